"""Per-table mutual exclusion for column mutations.

Shifting column positions takes several single-row writes. Two of those
sequences interleaving on the same table could leave duplicate or missing
positions, so every positional mutation and its commit run while holding
the table's lock. The lock is in-process; deployments with several worker
processes rely on the (table_id, position) unique constraint, which turns
a lost race into a ConflictError instead of a corrupted ordering.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class TableLockRegistry:
    """Hands out one asyncio.Lock per table id.

    Locks are weakly referenced, so a table nobody is mutating holds no
    lock object.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, table_id: str) -> asyncio.Lock:
        """Get the lock for a table, creating it if needed."""
        lock = self._locks.get(table_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[table_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, table_id: str) -> AsyncIterator[None]:
        """Hold a table's lock for the duration of the block."""
        lock = self.get(table_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


# Global registry instance
_table_locks: TableLockRegistry | None = None


def get_table_locks() -> TableLockRegistry:
    """Get the global table lock registry."""
    global _table_locks
    if _table_locks is None:
        _table_locks = TableLockRegistry()
    return _table_locks
