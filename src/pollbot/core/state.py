"""Per-session state cells and the store that owns them.

Each session key (a chat id, or a user id for inline queries) maps to one
``State`` cell. Handlers receive the cell itself and take its lock for as
long as they need:

    async with state.write() as counter:
        counter.value += 1

Cells of one session are shared by every dispatch of that session, so two
updates from the same chat serialize on the cell's lock while different
chats proceed independently.
"""

from __future__ import annotations

import asyncio
import copy
import sys
import time
from collections.abc import AsyncIterator, Callable, MutableMapping
from contextlib import asynccontextmanager
from typing import Generic, TypeVar

import structlog
from cachetools import LRUCache, TTLCache

log = structlog.get_logger()

T = TypeVar("T")


class RWLock:
    """Readers-writer lock on top of ``asyncio.Condition``.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so a steady stream of reads
    cannot starve them.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def locked(self) -> bool:
        return self._writer or self._readers > 0

    async def acquire_read(self) -> None:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._waiting_writers == 0)
            self._readers += 1

    async def release_read(self) -> None:
        async with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    async def acquire_write(self) -> None:
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._waiting_writers -= 1
                # Readers parked behind a cancelled writer must re-check
                self._cond.notify_all()
            self._writer = True

    async def release_write(self) -> None:
        async with self._cond:
            self._writer = False
            self._cond.notify_all()

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[None]:
        await self.acquire_read()
        try:
            yield
        finally:
            await self.release_read()

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[None]:
        await self.acquire_write()
        try:
            yield
        finally:
            await self.release_write()


class State(Generic[T]):
    """A value guarded by a readers-writer lock.

    ``read()`` and ``write()`` yield the live value. Mutate it in place under
    ``write()``; use ``replace()`` to swap immutable values such as ints.
    ``replace()`` takes the write lock itself, so never call it from inside
    ``write()``.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = RWLock()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[T]:
        async with self._lock.reading():
            yield self._value

    @asynccontextmanager
    async def write(self) -> AsyncIterator[T]:
        async with self._lock.writing():
            yield self._value

    async def replace(self, value: T) -> T:
        """Swap in ``value`` and return the previous one."""
        async with self._lock.writing():
            previous, self._value = self._value, value
            return previous

    async def snapshot(self) -> T:
        """Deep copy of the current value, taken under the read lock."""
        async with self._lock.reading():
            return copy.deepcopy(self._value)

    async def clone(self) -> State[T]:
        """New independent cell holding a deep copy of the current value."""
        return State(await self.snapshot())

    def __repr__(self) -> str:
        return f"State({self._value!r})"


class SessionStore:
    """Map of session key to state cell.

    Without limits the store grows with every new session. ``max_sessions``
    evicts the least recently used cell once the store is full; ``ttl``
    evicts cells idle for that many seconds. A cell checked out by a running
    dispatch is pinned: updates for its session keep getting that cell until
    the last dispatch using it returns, even if the cache dropped it in the
    meantime. Once a session is idle and evicted, its next update starts over
    from the handler's initial state.

    Example:
        store = SessionStore(max_sessions=10_000, ttl=3600)
        async with store.checkout(chat_id, handler.initial_state) as cell:
            ...
    """

    def __init__(
        self,
        max_sessions: int | None = None,
        ttl: float | None = None,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions is not None and max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")

        self._cells: MutableMapping[int, State[object]]
        if ttl is not None:
            self._cells = TTLCache(maxsize=max_sessions or sys.maxsize, ttl=ttl, timer=timer)
        elif max_sessions is not None:
            self._cells = LRUCache(maxsize=max_sessions)
        else:
            self._cells = {}

        # key -> (cell, number of dispatches holding it)
        self._pinned: dict[int, tuple[State[object], int]] = {}
        self._lock = asyncio.Lock()
        self.max_sessions = max_sessions
        self.ttl = ttl

    async def get_or_create(self, key: int, initial_state: State[T]) -> State[T]:
        """Return the cell for ``key``, cloning ``initial_state`` on first use."""
        async with self._lock:
            return await self._lookup(key, initial_state)

    @asynccontextmanager
    async def checkout(self, key: int, initial_state: State[T]) -> AsyncIterator[State[T]]:
        """Cell for ``key``, pinned against eviction until the block exits."""
        async with self._lock:
            cell = await self._lookup(key, initial_state)
            _, holders = self._pinned.get(key, (cell, 0))
            self._pinned[key] = (cell, holders + 1)  # type: ignore[assignment]
        try:
            yield cell
        finally:
            self._unpin(key)

    async def _lookup(self, key: int, initial_state: State[T]) -> State[T]:
        cell = self._cells.get(key)
        if cell is None and key in self._pinned:
            cell = self._pinned[key][0]
            log.debug("session_restored", session_key=key)
        if cell is None:
            cell = await initial_state.clone()  # type: ignore[assignment]
            log.debug("session_created", session_key=key)
        # Re-setting refreshes the entry's TTL
        self._cells[key] = cell  # type: ignore[assignment]
        return cell  # type: ignore[return-value]

    def _unpin(self, key: int) -> None:
        cell, holders = self._pinned[key]
        if holders > 1:
            self._pinned[key] = (cell, holders - 1)
        else:
            del self._pinned[key]

    def in_use(self, key: int) -> bool:
        """Whether a running dispatch holds the cell for ``key``."""
        return key in self._pinned

    def get(self, key: int) -> State[object] | None:
        cell = self._cells.get(key)
        if cell is None and key in self._pinned:
            return self._pinned[key][0]
        return cell

    def evict(self, key: int) -> bool:
        """Drop the cached cell for ``key``. Returns whether one was present.

        A pinned cell stays reachable until its dispatches finish.
        """
        return self._cells.pop(key, None) is not None

    def clear(self) -> None:
        self._cells.clear()

    def __len__(self) -> int:
        if isinstance(self._cells, TTLCache):
            self._cells.expire()
        return len(self._cells)

    def __contains__(self, key: object) -> bool:
        return key in self._cells
