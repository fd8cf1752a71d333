# tests/unit/persistence/test_serializer.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import json
from enum import Enum
from unittest.mock import MagicMock

import pytest

from tsm.core.callbacks import CallbackRegistry
from tsm.core.graph import TransitionGraph
from tsm.persistence.serializer import (
    MachineSnapshot,
    SnapshotSummary,
    StateSnapshot,
    TimeoutSnapshot,
    capture_snapshot,
    state_label,
)
from tsm.runtime.timeouts import TimeoutConfig, TimeoutManager


class Color(Enum):
    RED = 1
    GREEN = 2


@pytest.mark.parametrize(
    "state, label",
    [(Color.RED, "RED"), ("closed", "closed"), (3, "3"), ((1, 2), "(1, 2)")],
)
def test_state_label(state, label) -> None:
    assert state_label(state) == label


def test_empty_machine_snapshot(machine_factory, phase) -> None:
    snapshot = machine_factory().to_snapshot()

    assert snapshot.current is phase.IDLE
    assert snapshot.previous is phase.IDLE
    assert snapshot.initial is phase.IDLE
    assert snapshot.states == ()
    assert snapshot.summary == SnapshotSummary(0, 0, 0, 0)


def test_snapshot_lists_graph_states_with_adjacency(machine, phase) -> None:
    snapshot = machine.to_snapshot()

    assert [entry.state for entry in snapshot.states] == [phase.IDLE, phase.LOADING, phase.READY, phase.ERROR]

    idle = snapshot.state(phase.IDLE)
    assert idle.to_states == (phase.LOADING,)
    assert idle.from_states == (phase.READY,)

    loading = snapshot.state(phase.LOADING)
    assert loading.to_states == (phase.READY, phase.ERROR)
    assert loading.from_states == (phase.IDLE,)

    error = snapshot.state(phase.ERROR)
    assert error.to_states == ()
    assert error.timeout is None
    assert error.callback_count == 0


def test_state_lookup_for_unknown_state(machine) -> None:
    assert machine.to_snapshot().state("unknown") is None


def test_summary_counts(machine, phase, callback) -> None:
    machine.set_state_timeout(phase.IDLE, 100, expire_target=phase.LOADING)
    machine.set_state_timeout(phase.LOADING, 200, on_expire=callback)
    machine.on(phase.READY, callback)

    summary = machine.to_snapshot().summary
    assert summary.total_states == 4
    assert summary.total_transitions == 4
    assert summary.states_with_timeouts == 2
    assert summary.active_timers == 1


def test_timeout_details(machine, phase, callback) -> None:
    machine.set_state_timeout(phase.IDLE, 100, expire_target=phase.LOADING)
    machine.set_state_timeout(phase.LOADING, 200, expire_target=phase.ERROR, on_expire=callback)

    snapshot = machine.to_snapshot()
    assert snapshot.state(phase.IDLE).timeout == TimeoutSnapshot(
        duration_ms=100, expire_target=phase.LOADING, has_callback=False, is_active=True
    )
    assert snapshot.state(phase.LOADING).timeout == TimeoutSnapshot(
        duration_ms=200, expire_target=phase.ERROR, has_callback=True, is_active=False
    )


def test_callback_counts(machine, phase) -> None:
    machine.on(phase.READY, MagicMock()).on(phase.READY, MagicMock())
    assert machine.to_snapshot().state(phase.READY).callback_count == 2


def test_snapshot_reflects_the_moment_it_was_taken(machine, phase) -> None:
    before = machine.to_snapshot()
    machine.go(phase.LOADING)
    after = machine.to_snapshot()

    assert before.current is phase.IDLE
    assert after.current is phase.LOADING
    assert after.previous is phase.IDLE


def test_timeout_for_state_outside_graph_is_counted_but_not_listed(machine, callback) -> None:
    machine.set_state_timeout("orphan", 100, on_expire=callback)
    snapshot = machine.to_snapshot()

    assert snapshot.state("orphan") is None
    assert snapshot.summary.states_with_timeouts == 1
    assert snapshot.summary.total_states == 4


def test_capture_snapshot_from_components() -> None:
    graph = TransitionGraph()
    graph.add_transition("A", "B")
    callbacks = CallbackRegistry()
    callbacks.register("B", MagicMock())
    timeouts = TimeoutManager(MagicMock(), MagicMock())
    timeouts.set_config("B", TimeoutConfig(50, expire_target="A"))

    snapshot = capture_snapshot("A", "A", "A", graph, timeouts, callbacks)

    assert snapshot.state("B") == StateSnapshot(
        state="B",
        to_states=(),
        from_states=("A",),
        timeout=TimeoutSnapshot(duration_ms=50, expire_target="A", has_callback=False, is_active=False),
        callback_count=1,
    )
    assert snapshot.summary == SnapshotSummary(
        total_states=2, total_transitions=1, states_with_timeouts=1, active_timers=0
    )


def test_snapshot_is_frozen(machine) -> None:
    snapshot = machine.to_snapshot()
    with pytest.raises(AttributeError):
        snapshot.current = "other"  # type: ignore[misc]


# -----------------------------------------------------------------------------
# PLAIN DATA AND JSON
# -----------------------------------------------------------------------------
def test_to_dict_keeps_state_values(machine, phase) -> None:
    machine.set_state_timeout(phase.IDLE, 100, expire_target=phase.LOADING)
    data = machine.to_snapshot().to_dict()

    assert data["current"] is phase.IDLE
    assert data["states"][0] == {
        "state": phase.IDLE,
        "to_states": [phase.LOADING],
        "from_states": [phase.READY],
        "timeout": {
            "duration_ms": 100,
            "expire_target": phase.LOADING,
            "has_callback": False,
            "is_active": True,
        },
        "callback_count": 0,
    }
    assert data["summary"] == {
        "total_states": 4,
        "total_transitions": 4,
        "states_with_timeouts": 1,
        "active_timers": 1,
    }


def test_to_dict_omits_missing_timeout_and_target(machine, phase, callback) -> None:
    machine.set_state_timeout(phase.LOADING, 100, on_expire=callback)
    data = machine.to_snapshot().to_dict()

    assert "timeout" not in data["states"][0]
    assert data["states"][1]["timeout"] == {"duration_ms": 100, "has_callback": True, "is_active": False}


def test_to_json_labels_enum_states(machine, phase) -> None:
    machine.set_state_timeout(phase.LOADING, 100, expire_target=phase.READY)
    machine.go(phase.LOADING)

    document = json.loads(machine.to_snapshot().to_json())

    assert document["current"] == "LOADING"
    assert document["previous"] == "IDLE"
    assert document["initial"] == "IDLE"
    loading = document["states"][1]
    assert loading["state"] == "LOADING"
    assert loading["to_states"] == ["READY", "ERROR"]
    assert loading["from_states"] == ["IDLE"]
    assert loading["timeout"] == {
        "duration_ms": 100,
        "expire_target": "READY",
        "has_callback": False,
        "is_active": True,
    }
    assert document["summary"]["active_timers"] == 1


def test_to_json_compact(machine) -> None:
    text = machine.to_snapshot().to_json(indent=None)
    assert "\n" not in text
    assert json.loads(text)["summary"]["total_states"] == 4


def test_to_json_for_arbitrary_hashable_states(machine_factory) -> None:
    m = machine_factory(1)
    m.add_transition(1, 2)
    document = json.loads(m.to_snapshot().to_json())
    assert document["current"] == "1"
    assert document["states"][0]["to_states"] == ["2"]


def test_direct_snapshot_construction() -> None:
    snapshot = MachineSnapshot(
        current="A",
        previous="A",
        initial="A",
        states=(StateSnapshot(state="A"),),
        summary=SnapshotSummary(1, 0, 0, 0),
    )
    assert json.loads(snapshot.to_json())["states"] == [
        {"state": "A", "to_states": [], "from_states": [], "callback_count": 0}
    ]
