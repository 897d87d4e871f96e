"""Single-writer observable holder for `DispatchState` snapshots."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from typing import Any

from koreaderctl.core.model import DispatchState

LOGGER = logging.getLogger(__name__)

StateListener = Callable[[DispatchState], None]


class StateStore:
    """Copy-on-write state cell.

    Every commit swaps in a new frozen snapshot under a lock, so a reader
    never sees a half-applied update. Listeners are called outside the lock.
    """

    def __init__(self, initial: DispatchState | None = None) -> None:
        self._state = initial or DispatchState()
        self._lock = threading.Lock()
        self._listeners: list[StateListener] = []

    @property
    def snapshot(self) -> DispatchState:
        return self._state

    def update(self, **changes: Any) -> DispatchState:
        with self._lock:
            self._state = dataclasses.replace(self._state, **changes)
            state = self._state
        self._notify(state)
        return state

    def update_if(self, predicate: Callable[[DispatchState], bool], **changes: Any) -> bool:
        with self._lock:
            if not predicate(self._state):
                return False
            self._state = dataclasses.replace(self._state, **changes)
            state = self._state
        self._notify(state)
        return True

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, state: DispatchState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                LOGGER.exception("State listener %r failed", listener)
