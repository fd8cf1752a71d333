# tsm/core/state_machine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import threading
import warnings
from dataclasses import dataclass
from typing import Any, Generic, List, Mapping, Optional

from tsm.core.callbacks import CallbackRegistry
from tsm.core.errors import ExpiredTransitionWarning, InvalidTransitionError, TimerSchedulingError
from tsm.core.graph import TransitionGraph
from tsm.core.types import ExpireCallback, S, StateCallback
from tsm.persistence.display import render_display
from tsm.persistence.serializer import MachineSnapshot, capture_snapshot
from tsm.runtime.timeouts import TimeoutConfig, TimeoutManager
from tsm.runtime.timers import DefaultTimerScheduler, TimerScheduler


@dataclass(frozen=True)
class TransitionOptions:
    """Trailing options accepted by StateMachine.add_transitions()."""

    loop: bool = False


class StateMachine(Generic[S]):
    """
    A finite state machine over caller-defined states with entry callbacks and
    per-state timeouts.

    Transitions must be declared before they can be taken. go() validates the
    move against the transition graph, updates current/previous, notifies the
    callbacks registered for the target and then arms the target's timeout.
    Callbacks and expiration handlers may call go() again; the nested call runs
    to completion before the outer one continues.
    """

    def __init__(
        self,
        initial: S,
        scheduler: Optional[TimerScheduler] = None,
        throw_on_invalid: bool = False,
    ) -> None:
        """
        :param initial: The state in which this machine begins and to which
                        reset() returns.
        :param scheduler: Timer backend for state timeouts. Defaults to the
                          asyncio loop running when a timer is armed, or a
                          timer thread when none is running.
        :param throw_on_invalid: Default policy for go() when the requested
                                 transition does not exist.
        """
        self._logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._initial = initial
        self._current = initial
        self._previous = initial
        self._throw_on_invalid = throw_on_invalid

        self._graph: TransitionGraph[S] = TransitionGraph()
        self._callbacks: CallbackRegistry[S] = CallbackRegistry()
        self._timeouts: TimeoutManager[S] = TimeoutManager(
            scheduler or DefaultTimerScheduler(),
            self._handle_expiration,
            lock=self._lock,
        )

    @property
    def current(self) -> S:
        """The state the machine is in."""
        return self._current

    @property
    def previous(self) -> S:
        """The state the machine was in before the last transition."""
        return self._previous

    @property
    def initial(self) -> S:
        return self._initial

    @property
    def graph(self) -> TransitionGraph[S]:
        return self._graph

    @property
    def scheduler(self) -> TimerScheduler:
        return self._timeouts.scheduler

    # ------------------------------------------------------------------
    # Graph building
    # ------------------------------------------------------------------
    def add_transition(self, source: S, target: S, loop: bool = False) -> None:
        """
        Permit source -> target. This does not permit target -> source unless
        loop is set.
        """
        self._graph.add_transition(source, target, loop=loop)

    def add_transitions(self, source: S, *targets: Any, loop: bool = False) -> None:
        """
        Permit transitions from source to each target.

        The loop behavior may also be given as a trailing TransitionOptions or
        a mapping with a "loop" key, e.g.
        add_transitions(A, B, C, TransitionOptions(loop=True)).
        """
        if targets and _is_options(targets[-1]):
            options = targets[-1]
            targets = targets[:-1]
            loop = bool(options.loop if isinstance(options, TransitionOptions) else options.get("loop", False))
        self._graph.add_transitions(source, *targets, loop=loop)

    def add_path(self, *states: S) -> None:
        """
        Link the states together in argument order, one way. The path may
        revisit states, e.g. add_path(Running, Paused, Transform, Paused).
        """
        self._graph.add_path(*states)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------
    def can_transition(self, state: S) -> bool:
        """
        Check if a transition to state is valid from the current state. This
        does not perform the transition.
        """
        return self._graph.has_edge(self._current, state)

    def get_valid_transitions(self) -> List[S]:
        """States reachable in one step from the current state."""
        return self._graph.neighbors(self._current)

    def get_state_timeout(self, state: S) -> Optional[TimeoutConfig[S]]:
        return self._timeouts.get_config(state)

    def has_active_timer(self, state: S) -> bool:
        return self._timeouts.is_armed(state)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------
    def go(self, state: S, throw_on_invalid: Optional[bool] = None) -> S:
        """
        Attempt to transition to state.

        :param state: State to transition to.
        :param throw_on_invalid: Raise instead of ignoring an invalid
                                 transition. Defaults to the machine's policy.
        :return: The current state after the call (unchanged if the
                 transition was rejected).
        :raises InvalidTransitionError: If the transition is invalid and the
                                        throwing policy is in effect.
        """
        strict = self._throw_on_invalid if throw_on_invalid is None else throw_on_invalid
        with self._lock:
            if not self.can_transition(state):
                valid = self.get_valid_transitions()
                message = (
                    f"Invalid state transition from {self._current} to {state}. "
                    f"Valid transitions from {self._current}: {', '.join(str(s) for s in valid)}"
                )
                if strict:
                    raise InvalidTransitionError(message, self._current, state, valid)
                self._logger.warning(message)
                return self._current

            source = self._current
            self._timeouts.disarm(source)

            self._previous = source
            self._current = state
            self._logger.debug("Transitioned %s -> %s", source, state)

            self._callbacks.dispatch(state, source, state)

            # A callback may have moved the machine on; the timer is still armed
            # for the state this call entered.
            self._timeouts.arm(state)
            return self._current

    def reset(self) -> None:
        """
        Return to the initial state. Cancels every running timer and rearms
        the initial state's timeout, if it has one. Transitions, callbacks and
        timeout configurations are kept.
        """
        with self._lock:
            self._timeouts.disarm_all()
            self._previous = self._initial
            self._current = self._initial
            self._logger.debug("Reset to initial state %s", self._initial)
            self._timeouts.arm(self._initial)

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------
    def on(self, state: S, callback: StateCallback) -> "StateMachine[S]":
        """
        Register a callback invoked as callback(from_state, to_state) whenever
        the machine enters state.

        :return: This machine, for chaining.
        """
        self._callbacks.register(state, callback)
        return self

    # ------------------------------------------------------------------
    # Timeouts
    # ------------------------------------------------------------------
    def set_state_timeout(
        self,
        state: S,
        duration_ms: float,
        expire_target: Optional[S] = None,
        on_expire: Optional[ExpireCallback] = None,
    ) -> "StateMachine[S]":
        """
        Expire state after duration_ms. On expiry on_expire(state) is called if
        given (it takes precedence); otherwise the machine goes to
        expire_target. Leaving the state first cancels the timer.

        If state is current, its timer is restarted immediately.

        :raises InvalidTimeoutError: If duration_ms is not positive or neither
                                     expire_target nor on_expire is given.
        :raises TimerSchedulingError: If the timer for the current state cannot
                                      be scheduled. The previous configuration
                                      and its running timer are kept.
        """
        config = TimeoutConfig(duration_ms=duration_ms, expire_target=expire_target, on_expire=on_expire)
        with self._lock:
            previous = self._timeouts.get_config(state)
            self._timeouts.set_config(state, config)
            if self._current == state:
                try:
                    self._timeouts.arm(state)
                except TimerSchedulingError:
                    if previous is None:
                        self._timeouts.clear_config(state)
                    else:
                        self._timeouts.set_config(state, previous)
                    raise
        return self

    def clear_state_timeout(self, state: S) -> "StateMachine[S]":
        """Remove the timeout configuration for state and stop its timer."""
        with self._lock:
            self._timeouts.clear_config(state)
        return self

    def _handle_expiration(self, state: S, config: TimeoutConfig[S]) -> None:
        with self._lock:
            if self._current != state:
                self._logger.debug("Discarding expiration of %s; current state is %s", state, self._current)
                return

            if config.on_expire is not None:
                config.on_expire(state)
                return

            target = config.expire_target
            if self.can_transition(target):
                self._logger.debug("State %s expired, moving to %s", state, target)
                self.go(target)
                return

            message = f"State {state} expired but cannot transition to {target} - invalid transition"
            self._logger.warning(message)
            warnings.warn(ExpiredTransitionWarning(message, state, target), stacklevel=2)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def to_snapshot(self) -> MachineSnapshot:
        """Structured view of the machine's configuration and live status."""
        with self._lock:
            return capture_snapshot(
                current=self._current,
                previous=self._previous,
                initial=self._initial,
                graph=self._graph,
                timeouts=self._timeouts,
                callbacks=self._callbacks,
            )

    def to_display_string(self) -> str:
        """Human-readable rendering of to_snapshot()."""
        return render_display(self.to_snapshot())

    def __str__(self) -> str:
        return self.to_display_string()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(current={self._current!r}, previous={self._previous!r}, "
            f"initial={self._initial!r}, states={len(self._graph)})"
        )


def _is_options(value: Any) -> bool:
    return isinstance(value, TransitionOptions) or (isinstance(value, Mapping) and "loop" in value)
