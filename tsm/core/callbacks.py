# tsm/core/callbacks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Dict, Generic, List

from tsm.core.types import S, StateCallback


class CallbackRegistry(Generic[S]):
    """
    Keeps the entry callbacks registered per target state and invokes them in
    registration order when the state is entered.
    """

    def __init__(self) -> None:
        self._callbacks: Dict[S, List[StateCallback]] = {}

    def register(self, state: S, callback: StateCallback) -> None:
        """
        Register a callback for entries into state. Registering the same
        callable twice for a state has no effect. Duplicates are detected by
        equality rather than identity, so a bound method re-created from the
        same instance counts as the same callback, and so does any callable
        object whose __eq__ says it is equal to one already registered.

        :param state: State whose entry triggers the callback.
        :param callback: Callable invoked as callback(from_state, to_state).
        """
        if not callable(callback):
            raise ValueError("Callback must be callable")
        callbacks = self._callbacks.setdefault(state, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def dispatch(self, state: S, from_state: S, to_state: S) -> None:
        """
        Invoke every callback registered for state. Exceptions raised by a
        callback propagate to the caller; later callbacks are not run.
        """
        for callback in list(self._callbacks.get(state, ())):
            callback(from_state, to_state)

    def count(self, state: S) -> int:
        """Number of callbacks registered for state."""
        return len(self._callbacks.get(state, ()))

    def __contains__(self, state: object) -> bool:
        return bool(self._callbacks.get(state))
