# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import threading
from enum import Enum
from unittest.mock import MagicMock

import pytest

from tsm.core.state_machine import StateMachine
from tsm.runtime.timers import ManualTimerScheduler


class Phase(Enum):
    IDLE = "Idle"
    LOADING = "Loading"
    READY = "Ready"
    ERROR = "Error"


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "property: mark test as a property-based test")
    config.addinivalue_line("markers", "slow: mark test as relying on wall-clock timers")


@pytest.fixture
def phase():
    """The Phase enum used as the state domain in most tests."""
    return Phase


@pytest.fixture
def clock() -> ManualTimerScheduler:
    """A virtual clock so timeouts fire only when the test advances it."""
    return ManualTimerScheduler()


@pytest.fixture
def machine_factory(clock):
    """Returns a factory creating machines driven by the virtual clock."""

    def _factory(initial=Phase.IDLE, **kwargs) -> StateMachine:
        kwargs.setdefault("scheduler", clock)
        return StateMachine(initial, **kwargs)

    return _factory


@pytest.fixture
def machine(machine_factory) -> StateMachine:
    """Idle -> Loading -> Ready -> Idle, plus Loading -> Error."""
    m = machine_factory()
    m.add_path(Phase.IDLE, Phase.LOADING, Phase.READY)
    m.add_transition(Phase.READY, Phase.IDLE)
    m.add_transition(Phase.LOADING, Phase.ERROR)
    return m


@pytest.fixture
def callback():
    """A mock entry callback."""
    return MagicMock(name="callback")


@pytest.fixture(autouse=True)
def cleanup_threads():
    yield
    # Cleanup any remaining threads after each test
    for thread in threading.enumerate():
        if thread != threading.current_thread() and thread.is_alive() and not thread.daemon:
            thread.join(timeout=1.0)
