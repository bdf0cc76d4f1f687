"""Per-domain cache store.

Only the owning domain's fetch and mutation paths write to a store;
consumers read snapshots and register listeners.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheSnapshot(BaseModel, Generic[T]):
    """Immutable ``{data, loading, error}`` view handed to consumers."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: T
    loading: bool
    error: str | None = None


class CacheStore(Generic[T]):
    """Holds the materialized view of one domain plus its loading/error flags.

    ``loading`` starts ``True`` and is true exactly while a fetch is in
    flight. A successful fetch replaces ``data`` wholesale; a failed fetch
    keeps the previous ``data`` and records ``error`` until the next
    attempt starts or an overlapping fetch succeeds.
    """

    def __init__(self, initial: T) -> None:
        self._initial = initial
        self._data = initial
        self._loading = True
        self._error: str | None = None
        self._in_flight = 0
        self._listeners: list[Callable[[CacheSnapshot[T]], None]] = []

    @property
    def data(self) -> T:
        return self._data

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    def snapshot(self) -> CacheSnapshot[T]:
        return CacheSnapshot(data=self._data, loading=self._loading, error=self._error)

    def add_listener(self, listener: Callable[[CacheSnapshot[T]], None]) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def begin_fetch(self) -> None:
        self._in_flight += 1
        self._loading = True
        self._error = None
        self._notify()

    def commit(self, data: T) -> None:
        """Finish a fetch successfully, replacing ``data`` wholesale."""
        self._in_flight = max(0, self._in_flight - 1)
        self._data = data
        self._error = None
        self._loading = self._in_flight > 0
        self._notify()

    def fail(self, message: str) -> None:
        """Finish a fetch with an error; previous ``data`` is retained."""
        self._in_flight = max(0, self._in_flight - 1)
        self._error = message
        self._loading = self._in_flight > 0
        self._notify()

    def discard(self) -> None:
        """Finish a fetch whose result no longer applies (superseded identity)."""
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0 and self._loading:
            self._loading = False
            self._notify()

    def reset(self) -> None:
        """Discard cached data (identity change or teardown)."""
        self._data = self._initial
        self._error = None
        self._loading = True
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                _logger.debug("cache store listener failed", exc_info=True)
