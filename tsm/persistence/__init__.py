"""
Persistence package for snapshots and displays.

Architecture:
- Captures machine configuration and live status as plain data
- Renders snapshots as JSON or human-readable text

Design Patterns:
- Memento Pattern for state capture
"""

from .display import render_display
from .serializer import (
    MachineSnapshot,
    SnapshotSummary,
    StateSnapshot,
    TimeoutSnapshot,
    capture_snapshot,
    state_label,
)

__all__ = [
    "MachineSnapshot",
    "StateSnapshot",
    "TimeoutSnapshot",
    "SnapshotSummary",
    "capture_snapshot",
    "render_display",
    "state_label",
]
