"""
Tests for Execution Lock.

Requires Python 3.11+.
"""

import asyncio

import pytest

from watcher.lock import ExecutionLock


async def _hold(lock: ExecutionLock, key: str, name: str, log: list[str], delay: float = 0.02) -> None:
    async with lock.hold(key):
        log.append(f"{name}:start")
        await asyncio.sleep(delay)
        log.append(f"{name}:end")


class TestExecutionLock:
    """Test cases for ExecutionLock."""

    @pytest.mark.asyncio
    async def test_same_key_runs_sequentially_in_arrival_order(self):
        """Holders of one key never overlap and run first come, first served."""
        lock = ExecutionLock()
        log: list[str] = []

        await asyncio.gather(
            _hold(lock, ExecutionLock.GLOBAL_KEY, "a", log),
            _hold(lock, ExecutionLock.GLOBAL_KEY, "b", log),
            _hold(lock, ExecutionLock.GLOBAL_KEY, "c", log),
        )

        assert log == ["a:start", "a:end", "b:start", "b:end", "c:start", "c:end"]

    @pytest.mark.asyncio
    async def test_different_keys_overlap(self):
        """Distinct keys do not block each other."""
        lock = ExecutionLock()
        log: list[str] = []

        await asyncio.gather(
            _hold(lock, "pkg-a", "a", log),
            _hold(lock, "pkg-b", "b", log),
        )

        assert log[:2] == ["a:start", "b:start"]

    @pytest.mark.asyncio
    async def test_released_when_body_raises(self):
        """A failing body still releases the lock."""
        lock = ExecutionLock()

        with pytest.raises(RuntimeError):
            async with lock.hold():
                raise RuntimeError("boom")

        assert not lock.locked()
        async with lock.hold():
            assert lock.locked()

    def test_unknown_key_is_not_locked(self):
        """Keys that were never held report unlocked."""
        assert not ExecutionLock().locked("nothing")
