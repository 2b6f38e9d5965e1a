"""Memoized asynchronous data cell keyed by input value.

Concurrent callers for the same key share a single fetch task. The cell is
only touched from the event loop thread and never awaits between looking up
and inserting an entry, so lookups and inserts cannot interleave.

Cache layout per key::

    key -> _Entry(task, waiters)

``waiters`` counts callers currently awaiting an unfinished task. When the
last waiter is cancelled the fetch is cancelled too and the entry removed,
so a cancelled fetch never leaves a value behind.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    task: "asyncio.Task[V]"
    waiters: int = 0


class ResourceCell(Generic[K, V]):
    """Keyed async cell with at-most-once fetch per key.

    With ``retain=True`` the outcome of every fetch (value or exception) is
    kept for the lifetime of the cell, which matches one generation pass.
    With ``retain=False`` entries are dropped once the fetch finishes, so only
    requests that overlap in time share work.
    """

    def __init__(self, fetch: Callable[[K], Awaitable[V]], *, retain: bool = True) -> None:
        """Initialize cell.

        Args:
            fetch: Coroutine function producing the value for a key
            retain: Keep finished outcomes for later callers
        """
        self._fetch = fetch
        self._retain = retain
        self._entries: dict[K, _Entry[V]] = {}
        self._calls = 0

    @property
    def calls(self) -> int:
        """Number of fetch executions started."""
        return self._calls

    @property
    def retain(self) -> bool:
        return self._retain

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: K) -> V:
        """Return the value for ``key``, fetching it at most once.

        Raises:
            Exception: Whatever the fetch raised, replayed to every caller
            asyncio.CancelledError: If this caller is cancelled
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = self._start(key)

        if entry.task.done():
            return entry.task.result()

        entry.waiters += 1
        try:
            return await asyncio.shield(entry.task)
        finally:
            entry.waiters -= 1
            # Task still running here means this caller was cancelled.
            if entry.waiters == 0 and not entry.task.done():
                logger.debug(f"Cancelling abandoned fetch for {key!r}")
                self._discard(key, entry)
                entry.task.cancel()

    def cancel(self, key: K) -> bool:
        """Cancel an in-flight fetch and forget it.

        Returns:
            True if a running fetch was cancelled
        """
        entry = self._entries.get(key)
        if entry is None or entry.task.done():
            return False
        self._discard(key, entry)
        entry.task.cancel()
        return True

    def clear(self) -> None:
        """Cancel pending fetches and remove all entries."""
        for entry in self._entries.values():
            if not entry.task.done():
                entry.task.cancel()
        self._entries.clear()

    def _start(self, key: K) -> _Entry[V]:
        self._calls += 1
        task = asyncio.ensure_future(self._fetch(key))
        entry: _Entry[V] = _Entry(task)
        self._entries[key] = entry
        task.add_done_callback(lambda t: self._finished(key, entry, t))
        return entry

    def _finished(self, key: K, entry: _Entry[V], task: "asyncio.Task[V]") -> None:
        if task.cancelled():
            self._discard(key, entry)
            return

        exc = task.exception()
        if exc is not None:
            logger.debug(f"Fetch for {key!r} failed: {exc!r}")
        if not self._retain:
            self._discard(key, entry)

    def _discard(self, key: K, entry: _Entry[V]) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]
