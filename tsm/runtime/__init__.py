"""
Runtime package for state timeouts.

Architecture:
- Keeps per-state timeout configuration
- Arms and disarms one timer per state
- Delegates scheduling to pluggable timer backends

Design Patterns:
- Strategy Pattern for timer backends
- Command Pattern for scheduled expirations
"""

from .timeouts import TimeoutConfig, TimeoutManager
from .timers import (
    AsyncioTimerScheduler,
    DefaultTimerScheduler,
    ManualTimerScheduler,
    ThreadingTimerScheduler,
    TimerHandle,
    TimerScheduler,
)

__all__ = [
    "TimeoutConfig",
    "TimeoutManager",
    "TimerHandle",
    "TimerScheduler",
    "DefaultTimerScheduler",
    "AsyncioTimerScheduler",
    "ThreadingTimerScheduler",
    "ManualTimerScheduler",
]
