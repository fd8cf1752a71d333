"""
Core package providing the state machine engine.

Architecture:
- Transition graph records the legal moves between states
- Callback registry notifies listeners on state entry
- StateMachine orchestrates graph, callbacks and timeouts

Design Patterns:
- Observer Pattern for entry callbacks
- Mediator Pattern for coordination
"""

from .callbacks import CallbackRegistry
from .errors import (
    ExpiredTransitionWarning,
    InvalidTimeoutError,
    InvalidTransitionError,
    TimerSchedulingError,
    TSMError,
)
from .graph import TransitionGraph
from .state_machine import StateMachine, TransitionOptions

__all__ = [
    "CallbackRegistry",
    "TransitionGraph",
    "StateMachine",
    "TransitionOptions",
    "TSMError",
    "InvalidTransitionError",
    "InvalidTimeoutError",
    "TimerSchedulingError",
    "ExpiredTransitionWarning",
]
