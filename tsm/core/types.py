# tsm/core/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Callable, Hashable, TypeVar

# States are opaque to the engine; they only need hashing, equality and str().
S = TypeVar("S", bound=Hashable)

# Callback Types
StateCallback = Callable[[Any, Any], Any]
ExpireCallback = Callable[[Any], Any]
TimerCallback = Callable[[], None]
