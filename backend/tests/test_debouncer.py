"""
Tests for Debouncer.

Requires Python 3.11+.
"""

import asyncio

import pytest

from watcher.debouncer import DebounceState, Debouncer


class Recorder:
    """Collects debouncer firings."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def __call__(self, *args) -> None:
        self.calls.append(args)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestDebouncer:
    """Test cases for Debouncer."""

    @pytest.mark.asyncio
    async def test_single_event_fires_once(self, recorder: Recorder):
        """A lone event fires on the leading edge and not again."""
        debouncer = Debouncer(recorder, wait_ms=50, max_wait_ms=200)

        debouncer.trigger("a.py", None)
        assert recorder.calls == [("a.py", None)]
        assert debouncer.state is DebounceState.PENDING

        await asyncio.sleep(0.15)

        assert recorder.calls == [("a.py", None)]
        assert debouncer.state is DebounceState.IDLE

    @pytest.mark.asyncio
    async def test_burst_without_leading_fires_last_payload_once(self, recorder: Recorder):
        """N events within the quiet window fire exactly once with the last payload."""
        debouncer = Debouncer(recorder, wait_ms=60, max_wait_ms=1000, leading=False)

        for i in range(5):
            debouncer.trigger(f"file{i}.py")
            await asyncio.sleep(0.005)

        assert recorder.calls == []
        await asyncio.sleep(0.2)

        assert recorder.calls == [("file4.py",)]

    @pytest.mark.asyncio
    async def test_burst_with_leading_fires_first_then_last(self, recorder: Recorder):
        """The leading edge fires the first event, the trailing edge the latest."""
        debouncer = Debouncer(recorder, wait_ms=60, max_wait_ms=1000)

        for i in range(5):
            debouncer.trigger(f"file{i}.py")
            await asyncio.sleep(0.005)

        assert recorder.calls == [("file0.py",)]
        await asyncio.sleep(0.2)

        assert recorder.calls == [("file0.py",), ("file4.py",)]

    @pytest.mark.asyncio
    async def test_max_wait_bounds_latency(self, recorder: Recorder):
        """A stream longer than max_wait fires more than once before it goes quiet."""
        debouncer = Debouncer(recorder, wait_ms=50, max_wait_ms=100, leading=False)

        for i in range(20):
            debouncer.trigger(i)
            await asyncio.sleep(0.02)

        fired_during_stream = len(recorder.calls)
        await asyncio.sleep(0.15)

        assert fired_during_stream >= 2
        assert recorder.calls[-1] == (19,)
        assert debouncer.state is DebounceState.IDLE

    @pytest.mark.asyncio
    async def test_new_burst_after_quiet_fires_leading_again(self, recorder: Recorder):
        """Once idle, the next event starts a new burst."""
        debouncer = Debouncer(recorder, wait_ms=30, max_wait_ms=100)

        debouncer.trigger("first")
        await asyncio.sleep(0.1)
        debouncer.trigger("second")

        assert recorder.calls == [("first",), ("second",)]

    @pytest.mark.asyncio
    async def test_flush_fires_pending(self, recorder: Recorder):
        """flush fires the stored payload immediately."""
        debouncer = Debouncer(recorder, wait_ms=1000, max_wait_ms=None, leading=False)

        debouncer.trigger("a")
        debouncer.trigger("b")
        assert debouncer.pending

        assert debouncer.flush() is True
        assert recorder.calls == [("b",)]
        assert debouncer.state is DebounceState.IDLE
        assert debouncer.flush() is False

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self, recorder: Recorder):
        """cancel discards the stored payload."""
        debouncer = Debouncer(recorder, wait_ms=30, max_wait_ms=60, leading=False)

        debouncer.trigger("a")
        debouncer.cancel()
        await asyncio.sleep(0.1)

        assert recorder.calls == []
        assert not debouncer.pending
