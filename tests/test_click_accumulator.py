import asyncio
import logging

import pytest

from shortener.core.exceptions import StoreError
from shortener.services.click_accumulator import ClickAccumulator


class FailingStore:
    async def increment_clicks(self, short_code):
        raise StoreError("increment_clicks failed: disk I/O error")


class SlowStore:
    def __init__(self):
        self.release = asyncio.Event()
        self.incremented = []

    async def increment_clicks(self, short_code):
        await self.release.wait()
        self.incremented.append(short_code)
        return True


@pytest.mark.asyncio
class TestClickAccumulator:
    """Test best-effort click counting."""

    async def test_recorded_clicks_reach_the_store(self, store):
        await store.insert("https://example.com/a", "abc1234")
        clicks = ClickAccumulator(store)

        for _ in range(5):
            clicks.record("abc1234")
        await clicks.drain()

        assert (await store.lookup("abc1234")).clicks == 5
        assert clicks.recorded == 5
        assert clicks.failed == 0
        assert clicks.pending == 0

    async def test_record_does_not_wait_for_the_store(self):
        slow = SlowStore()
        clicks = ClickAccumulator(slow)

        clicks.record("abc1234")
        clicks.record("xyz9876")

        assert clicks.pending == 2
        assert slow.incremented == []

        slow.release.set()
        await clicks.drain()

        assert sorted(slow.incremented) == ["abc1234", "xyz9876"]
        assert clicks.pending == 0

    async def test_failures_are_logged_and_dropped(self, caplog):
        clicks = ClickAccumulator(FailingStore())

        with caplog.at_level(logging.ERROR, logger="shortener.services.click_accumulator"):
            clicks.record("abc1234")
            await clicks.drain()

        assert clicks.failed == 1
        assert clicks.recorded == 0
        assert "abc1234" in caplog.text
        assert "disk I/O error" in caplog.text

    async def test_unknown_code_is_not_a_failure(self, store):
        clicks = ClickAccumulator(store)

        clicks.record("nope123")
        await clicks.drain()

        assert clicks.failed == 0
        assert clicks.recorded == 1

    async def test_drain_with_nothing_pending(self, store):
        clicks = ClickAccumulator(store)
        await clicks.drain()
        assert clicks.pending == 0
