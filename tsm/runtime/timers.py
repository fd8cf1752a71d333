# tsm/runtime/timers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Timer scheduling backends.

The timeout manager never talks to a clock directly. It asks a TimerScheduler
to run a callback after a delay and keeps the returned handle so the timer can
be cancelled. The following schedulers are provided:

- DefaultTimerScheduler: the running asyncio loop if there is one, else a
  timer thread (default).
- AsyncioTimerScheduler: runs expirations on an asyncio event loop.
- ThreadingTimerScheduler: runs expirations on threading.Timer threads.
- ManualTimerScheduler: a virtual clock advanced explicitly by the caller.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import threading
from enum import Enum, auto
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable

from tsm.core.errors import TimerSchedulingError
from tsm.core.types import TimerCallback


@runtime_checkable
class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it runs."""

    def cancel(self) -> None:
        ...


@runtime_checkable
class TimerScheduler(Protocol):
    """
    Schedules callbacks to run once after a delay.

    Runtime Invariants:
    - The callback runs no earlier than delay seconds after call_later().
    - cancel() on the returned handle before the callback starts prevents it
      from running.
    """

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        ...


class AsyncioTimerScheduler:
    """
    Schedules callbacks with loop.call_later(). When no loop is given, the
    loop running at scheduling time is used.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: TimerCallback) -> asyncio.TimerHandle:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise TimerSchedulingError(
                    "Cannot schedule timer",
                    delay,
                    "no running event loop; pass a loop or use another TimerScheduler",
                ) from e
        if loop.is_closed():
            raise TimerSchedulingError("Cannot schedule timer", delay, "event loop is closed")
        return loop.call_later(delay, callback)


class ThreadingTimerScheduler:
    """
    Schedules callbacks on daemon threading.Timer threads. Callbacks run on
    the timer thread, so whatever they touch must be thread-safe.
    """

    def call_later(self, delay: float, callback: TimerCallback) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class DefaultTimerScheduler:
    """
    Schedules on the asyncio loop running at scheduling time, or on a daemon
    timer thread when no loop is running.
    """

    def __init__(self) -> None:
        self._asyncio = AsyncioTimerScheduler()
        self._threading = ThreadingTimerScheduler()

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return self._threading.call_later(delay, callback)
        return self._asyncio.call_later(delay, callback)


class TimerStatus(Enum):
    """Lifecycle of a timer on the manual clock."""

    PENDING = auto()
    CANCELLED = auto()
    FIRED = auto()


class Timer:
    """
    Represents a timeout scheduled on a ManualTimerScheduler.
    """

    def __init__(
        self,
        deadline: float,
        callback: TimerCallback,
        on_cancel: Optional[Callable[[], None]] = None,
    ) -> None:
        self._deadline = deadline
        self._callback = callback
        self._on_cancel = on_cancel
        self._status = TimerStatus.PENDING

    @property
    def deadline(self) -> float:
        """The virtual time at which this timer expires."""
        return self._deadline

    @property
    def status(self) -> TimerStatus:
        return self._status

    def is_expired(self, now: float) -> bool:
        """
        Check if the timer has reached its deadline.

        :param now: Current virtual time.
        :return: True if expired, False otherwise.
        """
        return now >= self._deadline

    def cancel(self) -> None:
        if self._status is TimerStatus.PENDING:
            self._status = TimerStatus.CANCELLED
            if self._on_cancel is not None:
                self._on_cancel()

    def _fire(self) -> None:
        self._status = TimerStatus.FIRED
        self._callback()


class ManualTimerScheduler:
    """
    Deterministic scheduler driven by a virtual clock. Nothing fires until
    advance() moves the clock past a timer's deadline, which makes expiration
    behavior reproducible in tests and simulations.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: List[Tuple[float, int, Timer]] = []
        self._counter = itertools.count()
        self._cancelled = 0

    @property
    def now(self) -> float:
        """Current virtual time in seconds."""
        return self._now

    def call_later(self, delay: float, callback: TimerCallback) -> Timer:
        if delay < 0:
            raise ValueError("Delay must be non-negative")
        timer = Timer(self._now + delay, callback, on_cancel=self._timer_cancelled)
        heapq.heappush(self._queue, (timer.deadline, next(self._counter), timer))
        return timer

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing due timers in deadline order. Timers
        scheduled by a firing callback also fire if they fall due before the
        new time. An exception raised by a callback propagates and leaves the
        clock at that timer's deadline.

        :param seconds: How far to move the clock.
        :return: Number of timers fired.
        """
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, timer = heapq.heappop(self._queue)
            if timer.status is not TimerStatus.PENDING:
                self._cancelled -= 1
                continue
            self._now = max(self._now, deadline)
            fired += 1
            timer._fire()
        self._now = target
        return fired

    def pending(self) -> int:
        """Number of timers still waiting to fire."""
        return len(self._queue) - self._cancelled

    def queued(self) -> int:
        """Number of heap entries, including cancelled timers not yet discarded."""
        return len(self._queue)

    def _timer_cancelled(self) -> None:
        # Rebuild the heap once cancelled entries make up half of it.
        self._cancelled += 1
        if self._cancelled * 2 >= len(self._queue):
            self._queue = [entry for entry in self._queue if entry[2].status is TimerStatus.PENDING]
            heapq.heapify(self._queue)
            self._cancelled = 0
