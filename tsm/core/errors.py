# tsm/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""Error taxonomy for the state machine engine."""

from typing import Any, Dict, List, Optional


class TSMError(Exception):
    """
    Base exception class for errors raised by the state machine engine.

    :param message: Human readable description.
    :param details: Optional diagnostic data attached to the error.
    """

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidTransitionError(TSMError):
    """
    Raised when go() is asked to follow an edge that does not exist and the
    throwing policy is in effect.
    """

    def __init__(
        self,
        message: str,
        source_state: Any,
        target_state: Any,
        valid_targets: Optional[List[Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.source_state = source_state
        self.target_state = target_state
        self.valid_targets = list(valid_targets or [])


class InvalidTimeoutError(TSMError):
    """
    Raised when a state timeout is configured with a non-positive duration or
    without any expiration behavior.
    """

    def __init__(
        self,
        message: str,
        duration_ms: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.duration_ms = duration_ms


class TimerSchedulingError(TSMError):
    """
    Raised when a timer backend is unable to schedule an expiration.
    """

    def __init__(
        self,
        message: str,
        duration: float,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(f"{message}: {reason}", details)
        self.duration = duration
        self.reason = reason


class ExpiredTransitionWarning(UserWarning):
    """
    Emitted when a state expires but its expire target is not reachable from
    the current state. The machine stays where it is.
    """

    def __init__(self, message: str, state: Any = None, expire_target: Any = None) -> None:
        super().__init__(message)
        self.state = state
        self.expire_target = expire_target
