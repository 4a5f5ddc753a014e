"""
Per-driver serialization of balance ledger mutations.

Ledger writes are read-latest -> compute -> write. Two of them running for
the same driver at once would both open from the same closing balance, so
every such sequence (up to and including its commit) runs while holding
the driver's lock. Distinct drivers never contend.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class DriverLockRegistry:
    """
    One asyncio.Lock per driver id, created on first use and dropped once
    no task holds or waits for it.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._users: Dict[int, int] = {}

    def lock_for(self, driver_id: int) -> asyncio.Lock:
        lock = self._locks.get(driver_id)
        if lock is None:
            lock = self._locks[driver_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, driver_id: int):
        lock = self.lock_for(driver_id)
        self._users[driver_id] = self._users.get(driver_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users.get(driver_id, 1) - 1
            if remaining:
                self._users[driver_id] = remaining
            else:
                self._users.pop(driver_id, None)
                self._locks.pop(driver_id, None)

    def is_locked(self, driver_id: int) -> bool:
        lock = self._locks.get(driver_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    def reset(self) -> None:
        """Forget all locks (used between event loops, e.g. in tests)."""
        self._locks.clear()
        self._users.clear()


# Process-wide registry shared by the settlement service and the ledger
driver_locks = DriverLockRegistry()
