# tsm/persistence/display.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""Plain-text rendering of machine snapshots for debugging and logs."""

from typing import List

from tsm.persistence.serializer import MachineSnapshot, StateSnapshot, TimeoutSnapshot, state_label

_RULE = "=" * 60


def render_display(snapshot: MachineSnapshot) -> str:
    """
    Render a snapshot as text: a header with the machine's position, one block
    per state and a summary line.

    States are ordered by their label. That order is for reading only and has
    no meaning for the machine.
    """
    lines: List[str] = [
        _RULE,
        "STATE MACHINE",
        _RULE,
        f"Current:  {state_label(snapshot.current)}",
        f"Previous: {state_label(snapshot.previous)}",
        f"Initial:  {state_label(snapshot.initial)}",
        "",
        "States:",
    ]

    for entry in sorted(snapshot.states, key=lambda e: state_label(e.state)):
        lines.extend(_render_state(entry, is_current=entry.state == snapshot.current))

    summary = snapshot.summary
    lines.extend(
        [
            _RULE,
            f"Total: {summary.total_states} states, {summary.total_transitions} transitions, "
            f"{summary.states_with_timeouts} with timeouts, {summary.active_timers} active timers",
            _RULE,
        ]
    )
    return "\n".join(lines)


def _render_state(entry: StateSnapshot, is_current: bool) -> List[str]:
    marker = "->" if is_current else "  "
    lines = [f"{marker} {state_label(entry.state)}"]

    if entry.to_states:
        targets = ", ".join(state_label(s) for s in entry.to_states)
    else:
        targets = "(none)"
    lines.append(f"     transitions: {targets}")

    if entry.timeout is not None:
        lines.append(f"     timeout: {_render_timeout(entry.timeout)}")
    if entry.callback_count:
        lines.append(f"     callbacks: {entry.callback_count}")
    return lines


def _render_timeout(timeout: TimeoutSnapshot) -> str:
    duration = timeout.duration_ms
    if float(duration).is_integer():
        duration = int(duration)
    parts = [f"{duration}ms"]
    if timeout.expire_target is not None:
        parts.append(f"-> {state_label(timeout.expire_target)}")
    if timeout.has_callback:
        parts.append("(custom handler)")
    if timeout.is_active:
        parts.append("[ACTIVE]")
    return " ".join(parts)
