"""
Per-user mutual exclusion for wallet and progression mutations
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Optional
import logging

logger = logging.getLogger(__name__)

class _KeyedLock:
    """Lock owned by a single task; the owning task may re-enter it"""

    __slots__ = ("lock", "owner", "depth", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.owner: Optional[asyncio.Task] = None
        self.depth = 0
        self.users = 0

class UserLockRegistry:
    """
    Keyed asyncio locks, one per user id

    Mutations against the same user are serialized, different users never
    contend. Locks are task-reentrant so a composite operation holding a
    user can call sub-operations that take the same user again. Idle lock
    objects are dropped so the registry does not grow with the user base.
    """

    def __init__(self):
        self._locks: Dict[Hashable, _KeyedLock] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def is_held(self, key: Hashable) -> bool:
        entry = self._locks.get(key)
        return entry is not None and entry.lock.locked()

    async def _acquire(self, key: Hashable) -> None:
        task = asyncio.current_task()
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyedLock()

        if entry.owner is task and task is not None:
            entry.depth += 1
            return

        entry.users += 1
        try:
            await entry.lock.acquire()
        except BaseException:
            entry.users -= 1
            self._discard_if_idle(key, entry)
            raise
        entry.owner = task
        entry.depth = 1

    def _release(self, key: Hashable) -> None:
        entry = self._locks[key]
        entry.depth -= 1
        if entry.depth:
            return
        entry.owner = None
        entry.users -= 1
        entry.lock.release()
        self._discard_if_idle(key, entry)

    def _discard_if_idle(self, key: Hashable, entry: _KeyedLock) -> None:
        if entry.users == 0 and not entry.lock.locked():
            self._locks.pop(key, None)

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """Hold every key, acquired in sorted order to avoid deadlocks"""
        ordered = sorted({str(key) for key in keys})
        acquired = []
        try:
            for key in ordered:
                await self._acquire(key)
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release(key)

# Process-wide registry shared by the services unless one is injected
user_locks = UserLockRegistry()
