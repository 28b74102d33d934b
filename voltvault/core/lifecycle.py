"""Explicit three-state lifecycle for store instances."""

from __future__ import annotations

import enum
import threading
from typing import Iterable

from ..errors import IllegalStateError


class LifecycleState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


class Lifecycle:
    """Track and guard the ``UNINITIALIZED -> INITIALIZED -> CLOSED`` progression.

    ``CLOSED`` is terminal: a store that has been closed is reopened by
    building a fresh instance against the same path.
    """

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._state = LifecycleState.UNINITIALIZED
        self._lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    def require(self, *allowed: LifecycleState, action: str) -> None:
        if self._state not in allowed:
            raise IllegalStateError(
                f"cannot {action} {self._owner} while it is {self._state.value}; "
                f"expected {_describe(allowed)}"
            )

    def require_open(self, action: str) -> None:
        self.require(LifecycleState.INITIALIZED, action=action)

    def transition(self, target: LifecycleState) -> None:
        with self._lock:
            self._state = target


def _describe(states: Iterable[LifecycleState]) -> str:
    return " or ".join(state.value for state in states)


__all__ = ["Lifecycle", "LifecycleState"]
