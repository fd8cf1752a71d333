# tsm/runtime/timeouts.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable, ContextManager, Dict, Generic, List, Optional

from tsm.core.errors import InvalidTimeoutError
from tsm.core.types import ExpireCallback, S
from tsm.runtime.timers import TimerHandle, TimerScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeoutConfig(Generic[S]):
    """
    Expiration settings for one state.

    When the state stays current for duration_ms, on_expire is called with the
    state if present; otherwise the machine moves to expire_target.
    """

    duration_ms: float
    expire_target: Optional[S] = None
    on_expire: Optional[ExpireCallback] = None

    def __post_init__(self) -> None:
        duration = self.duration_ms
        if isinstance(duration, bool) or not isinstance(duration, Real) or not duration > 0:
            raise InvalidTimeoutError("Timeout must be greater than 0", duration_ms=duration)
        if self.expire_target is None and self.on_expire is None:
            raise InvalidTimeoutError(
                "Either expire_target or on_expire must be provided", duration_ms=duration
            )
        if self.on_expire is not None and not callable(self.on_expire):
            raise InvalidTimeoutError("on_expire must be callable", duration_ms=duration)

    @property
    def has_callback(self) -> bool:
        return self.on_expire is not None

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0


@dataclass
class _ActiveTimer(Generic[S]):
    """Internal record tying a scheduled handle to the config it was armed with."""

    state: S
    config: TimeoutConfig[S]
    handle: Optional[TimerHandle] = None


ExpirationHandler = Callable[[Any, TimeoutConfig], None]


class TimeoutManager(Generic[S]):
    """
    Owns the per-state timeout configurations and at most one live timer per
    state. Timers are keyed by state only; the expiration handler must check
    that the state is still current before acting.
    """

    def __init__(
        self,
        scheduler: TimerScheduler,
        on_expire: ExpirationHandler,
        lock: Optional[ContextManager] = None,
    ) -> None:
        """
        :param scheduler: Backend used to schedule timers.
        :param on_expire: Called as on_expire(state, config) when a timer fires.
        :param lock: Reentrant lock held while a timer fires. Share the owning
                     machine's lock so expirations serialize with transitions.
        """
        self._scheduler = scheduler
        self._on_expire = on_expire
        self._lock = lock if lock is not None else threading.RLock()
        self._configs: Dict[S, TimeoutConfig[S]] = {}
        self._active: Dict[S, _ActiveTimer[S]] = {}

    @property
    def scheduler(self) -> TimerScheduler:
        return self._scheduler

    def set_config(self, state: S, config: TimeoutConfig[S]) -> None:
        """Store config for state, replacing any previous one."""
        self._configs[state] = config

    def get_config(self, state: S) -> Optional[TimeoutConfig[S]]:
        return self._configs.get(state)

    def has_config(self, state: S) -> bool:
        return state in self._configs

    def configured_states(self) -> List[S]:
        return list(self._configs)

    def clear_config(self, state: S) -> None:
        """Remove the config for state and cancel its timer, if any."""
        self._configs.pop(state, None)
        self.disarm(state)

    def arm(self, state: S) -> None:
        """
        Start the timer for state if it has a config, cancelling any timer
        already running for it. If the scheduler raises, the running timer is
        left in place.
        """
        config = self._configs.get(state)
        if config is None:
            return
        with self._lock:
            entry = _ActiveTimer(state=state, config=config)
            handle = self._scheduler.call_later(config.duration_seconds, lambda: self._fire(entry))
            self.disarm(state)
            entry.handle = handle
            self._active[state] = entry
        logger.debug("Armed %sms timeout for state %s", config.duration_ms, state)

    def disarm(self, state: S) -> None:
        """Cancel the timer for state, if one is running."""
        with self._lock:
            entry = self._active.pop(state, None)
            if entry is None:
                return
            if entry.handle is not None:
                entry.handle.cancel()
        logger.debug("Disarmed timeout for state %s", state)

    def disarm_all(self) -> None:
        """Cancel every running timer."""
        for state in list(self._active):
            self.disarm(state)

    def is_armed(self, state: S) -> bool:
        return state in self._active

    def active_states(self) -> List[S]:
        return list(self._active)

    def active_count(self) -> int:
        return len(self._active)

    def _fire(self, entry: _ActiveTimer[S]) -> None:
        # Drop the entry before any side effect so that re-arming from the
        # expiration handler is not mistaken for this timer.
        with self._lock:
            if self._active.get(entry.state) is not entry:
                logger.debug("Ignoring superseded timer for state %s", entry.state)
                return
            del self._active[entry.state]
            self._on_expire(entry.state, entry.config)
