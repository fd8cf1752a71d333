# tsm/persistence/serializer.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Structured snapshots of a state machine.

A snapshot captures the transition graph, timeout configuration, callback
counts and live position of a machine at one point in time. It is plain data:
registered callables are never included, only counted. Snapshots are meant for
validation (unreachable or dead-end states, expected timeouts), documentation
and transport, e.g. as JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from tsm.core.callbacks import CallbackRegistry
from tsm.core.graph import TransitionGraph
from tsm.runtime.timeouts import TimeoutManager


def state_label(state: Any) -> str:
    """Text used for a state in displays and JSON. Enum members use their name."""
    if isinstance(state, Enum):
        return state.name
    return str(state)


@dataclass(frozen=True)
class TimeoutSnapshot:
    duration_ms: float
    expire_target: Any = None
    has_callback: bool = False
    is_active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"duration_ms": self.duration_ms}
        if self.expire_target is not None:
            data["expire_target"] = self.expire_target
        data["has_callback"] = self.has_callback
        data["is_active"] = self.is_active
        return data


@dataclass(frozen=True)
class StateSnapshot:
    state: Any
    to_states: Tuple[Any, ...] = ()
    from_states: Tuple[Any, ...] = ()
    timeout: Optional[TimeoutSnapshot] = None
    callback_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "state": self.state,
            "to_states": list(self.to_states),
            "from_states": list(self.from_states),
        }
        if self.timeout is not None:
            data["timeout"] = self.timeout.to_dict()
        data["callback_count"] = self.callback_count
        return data


@dataclass(frozen=True)
class SnapshotSummary:
    total_states: int
    total_transitions: int
    states_with_timeouts: int
    active_timers: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_states": self.total_states,
            "total_transitions": self.total_transitions,
            "states_with_timeouts": self.states_with_timeouts,
            "active_timers": self.active_timers,
        }


@dataclass(frozen=True)
class MachineSnapshot:
    """Structured, serializable view of an entire machine."""

    current: Any
    previous: Any
    initial: Any
    states: Tuple[StateSnapshot, ...]
    summary: SnapshotSummary

    def state(self, state: Any) -> Optional[StateSnapshot]:
        """Look up the entry for state, or None if the graph never referenced it."""
        for entry in self.states:
            if entry.state == state:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Nested plain-data form. States are kept as the caller's values."""
        return {
            "current": self.current,
            "previous": self.previous,
            "initial": self.initial,
            "states": [entry.to_dict() for entry in self.states],
            "summary": self.summary.to_dict(),
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """JSON document of to_dict() with every state written as its label."""
        return json.dumps(_labelled(self.to_dict()), indent=indent)


_STATE_KEYS = ("current", "previous", "initial", "state", "expire_target")
_STATE_LIST_KEYS = ("to_states", "from_states")


def _labelled(data: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _STATE_KEYS:
            result[key] = state_label(value)
        elif key in _STATE_LIST_KEYS:
            result[key] = [state_label(s) for s in value]
        elif key == "states":
            result[key] = [_labelled(entry) for entry in value]
        elif isinstance(value, dict):
            result[key] = _labelled(value)
        else:
            result[key] = value
    return result


def capture_snapshot(
    current: Any,
    previous: Any,
    initial: Any,
    graph: TransitionGraph,
    timeouts: TimeoutManager,
    callbacks: CallbackRegistry,
) -> MachineSnapshot:
    """
    Build a snapshot covering every state the graph references. Timeout and
    callback details are attached to those states; the summary counts every
    configured timeout and every running timer.
    """
    entries = []
    for state in graph.states():
        config = timeouts.get_config(state)
        timeout = None
        if config is not None:
            timeout = TimeoutSnapshot(
                duration_ms=config.duration_ms,
                expire_target=config.expire_target,
                has_callback=config.has_callback,
                is_active=timeouts.is_armed(state),
            )
        entries.append(
            StateSnapshot(
                state=state,
                to_states=tuple(graph.neighbors(state)),
                from_states=tuple(graph.predecessors(state)),
                timeout=timeout,
                callback_count=callbacks.count(state),
            )
        )

    summary = SnapshotSummary(
        total_states=len(entries),
        total_transitions=graph.edge_count(),
        states_with_timeouts=len(timeouts.configured_states()),
        active_timers=timeouts.active_count(),
    )
    return MachineSnapshot(
        current=current,
        previous=previous,
        initial=initial,
        states=tuple(entries),
        summary=summary,
    )
