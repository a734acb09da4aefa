"""Compute-once cell for expensive resources acquired on first use."""
from __future__ import annotations

from enum import Enum
from threading import Lock
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class LazyState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    FAILED = "failed"


class Lazy(Generic[T]):
    """
    Run ``factory`` at most once and cache its result.

    A failed factory is not retried: later ``get()`` calls re-raise the
    original exception. Re-entrant ``get()`` from inside the factory raises
    ``RuntimeError`` instead of starting a second computation.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._lock = Lock()
        self._state = LazyState.NOT_STARTED
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None

    def get(self) -> T:
        with self._lock:
            if self._state is LazyState.READY:
                return self._value  # type: ignore[return-value]
            if self._state is LazyState.FAILED:
                assert self._error is not None
                raise self._error
            if self._state is LazyState.IN_PROGRESS:
                raise RuntimeError("Lazy value requested while it is being computed")
            self._state = LazyState.IN_PROGRESS

        try:
            value = self._factory()
        except BaseException as exc:
            with self._lock:
                self._error = exc
                self._state = LazyState.FAILED
            raise

        with self._lock:
            self._value = value
            self._state = LazyState.READY
        return value

    @property
    def state(self) -> LazyState:
        with self._lock:
            return self._state

    @property
    def is_started(self) -> bool:
        return self.state is not LazyState.NOT_STARTED

    @property
    def is_ready(self) -> bool:
        return self.state is LazyState.READY


__all__ = ["Lazy", "LazyState"]
