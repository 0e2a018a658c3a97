"""
Monowatch Execution Lock.

Named mutual exclusion for action bodies.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from utils.logger import LoggerMixin


class ExecutionLock(LoggerMixin):
    """
    Registry of named asyncio locks.

    Holders of the same key run one at a time, in arrival order. There
    is no timeout: a body that never finishes blocks every later holder
    of its key.
    """

    GLOBAL_KEY = "monowatch:action"

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, key: str = GLOBAL_KEY) -> AsyncIterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        The lock is released even if the block raises.
        """
        lock = self._get(key)
        if lock.locked():
            self.log.debug("lock_waiting", key=key)
        async with lock:
            self.log.debug("lock_acquired", key=key)
            yield

    def locked(self, key: str = GLOBAL_KEY) -> bool:
        """Check whether ``key`` is currently held."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
