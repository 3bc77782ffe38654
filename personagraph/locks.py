"""Per-key asyncio mutual exclusion.

Merges are check-then-act (look up, then insert or update). Two concurrent
merges for the same natural key would both see "not found" and create
duplicates, so the merge resolver serialises them through a KeyedLock.
The lock is process-local: writers in other processes still need a unique
index in the storage layer.
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock:
    """A lazily created asyncio.Lock per key, released when no longer held or awaited."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    def __len__(self) -> int:
        """Number of keys currently held or awaited."""
        return len(self._locks)

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]
