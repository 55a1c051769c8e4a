"""
Runtime state store.

``RuntimeState`` is the typed key-value store an execution mutates. All
writes go through a single-writer scope: listeners run synchronously inside
that scope, and a listener that tries to write the same state is rejected
with an ``invalid_operation`` error instead of re-entering the store.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from types import TracebackType
from typing import Any

from ..core.errors import RuntimeErrorKind, SproutRuntimeError
from ..core.guards import Guard
from ..core.ir import StateValue
from .models import StateChange

logger = logging.getLogger(__name__)

Listener = Callable[[StateChange], None]


def estimate_size(value: StateValue) -> int:
    """Heuristic byte cost of a value: string length, 8 per list slot or scalar."""
    if isinstance(value, str):
        return len(value)
    if isinstance(value, list):
        return len(value) * 8
    if isinstance(value, dict):
        return sum(len(key) + estimate_size(item) for key, item in value.items())
    return 8


class Subscription:
    """
    Handle returned by ``RuntimeState.subscribe``.

    Usable as a context manager; leaving the block unsubscribes.
    """

    def __init__(self, state: RuntimeState, listener_id: int):
        self._state = state
        self._listener_id = listener_id
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._state._remove_listener(self._listener_id)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()


class RuntimeState:
    """
    Mutable variable store with bounded history and change listeners.

    Example:
        >>> state = RuntimeState(guard)
        >>> with state.subscribe(print):
        ...     state.set("count", 1)
    """

    def __init__(self, guard: Guard, max_history: int = 100):
        self.guard = guard
        self._values: dict[str, StateValue] = {}
        self._history: deque[StateChange] = deque(maxlen=max_history)
        self._listeners: dict[int, Listener] = {}
        self._listener_ids = itertools.count(1)
        self._lock = threading.RLock()
        self._writer: int | None = None
        self.memory_usage = 0
        self.created_at = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.created_at

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        with self._lock:
            if name not in self._values:
                return default
            return copy.deepcopy(self._values[name])

    def snapshot(self) -> dict[str, StateValue]:
        with self._lock:
            return copy.deepcopy(self._values)

    @property
    def history(self) -> list[StateChange]:
        with self._lock:
            return list(self._history)

    def track_memory(self, amount: int) -> None:
        with self._lock:
            self.memory_usage += amount

    def set(self, name: str, value: StateValue) -> StateChange:
        """
        Validate and write a value, record history and notify listeners.

        Raises:
            SproutRuntimeError: If called from inside a listener of this state
            SecurityError: If the name or value violates the active policy
        """
        if self._writer == threading.get_ident():
            raise SproutRuntimeError(
                f"State '{name}' modified from inside a change listener",
                kind=RuntimeErrorKind.INVALID_OPERATION,
            )
        self.guard.check_state_name(name)
        self.guard.check_value(value, f"state variable '{name}'")

        with self._lock:
            self._writer = threading.get_ident()
            try:
                old = self._values.get(name)
                self._values[name] = copy.deepcopy(value)
                self.memory_usage += estimate_size(value)
                change = StateChange(name=name, old_value=old, new_value=value, timestamp=time.time())
                self._history.append(change)
                for listener in list(self._listeners.values()):
                    listener(change)
            finally:
                self._writer = None
        logger.debug("State %s updated", name)
        return change

    def subscribe(self, listener: Listener) -> Subscription:
        """Register ``listener`` for every subsequent write."""
        with self._lock:
            listener_id = next(self._listener_ids)
            self._listeners[listener_id] = listener
        return Subscription(self, listener_id)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def clear(self) -> None:
        """Drop all values and history; listeners stay registered."""
        with self._lock:
            self._values.clear()
            self._history.clear()
            self.memory_usage = 0
