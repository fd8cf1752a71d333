"""tsm: temporal finite state machine engine

This package provides a small, embeddable finite state machine for UI flows,
game states and connection lifecycles.

Responsibilities:
    - Declaring which transitions between states are legal
    - Tracking current, previous and initial state
    - Dispatching entry callbacks in registration order
    - Per-state timeouts that auto-transition or call a handler
    - Structured snapshots and text displays for inspection

Interactions:
    - Client code through the StateMachine API
    - asyncio event loop, timer threads or another TimerScheduler for timeouts
    - Logging system for diagnostics

Cross-cutting Concerns:
    Thread Safety:
        - Each machine serializes its own mutations with a reentrant lock
        - Callbacks may re-enter go() on the same thread

    Error Handling:
        - Structured error hierarchy rooted at TSMError
        - Invalid transitions are ignored or raised depending on policy
        - Callback exceptions propagate to the caller

    Logging:
        - Module loggers under the "tsm" namespace
        - No handlers installed by the library
"""

from tsm.core.errors import (
    ExpiredTransitionWarning,
    InvalidTimeoutError,
    InvalidTransitionError,
    TimerSchedulingError,
    TSMError,
)
from tsm.core.state_machine import StateMachine, TransitionOptions
from tsm.persistence.serializer import MachineSnapshot
from tsm.runtime.timeouts import TimeoutConfig
from tsm.runtime.timers import (
    AsyncioTimerScheduler,
    DefaultTimerScheduler,
    ManualTimerScheduler,
    ThreadingTimerScheduler,
)

__version__ = "0.1.0"

__all__ = [
    "StateMachine",
    "TransitionOptions",
    "TimeoutConfig",
    "MachineSnapshot",
    "DefaultTimerScheduler",
    "AsyncioTimerScheduler",
    "ThreadingTimerScheduler",
    "ManualTimerScheduler",
    "TSMError",
    "InvalidTransitionError",
    "InvalidTimeoutError",
    "TimerSchedulingError",
    "ExpiredTransitionWarning",
]
