"""
Tests for unique short code allocation.

The forced-collision tests use generators that replay codes already in
the database, so the retry paths run deterministically instead of
depending on a 1 in 62**7 chance.
"""

import asyncio
import logging
import os

import pytest

from shortener.core.exceptions import ShortCodeAllocationError, StoreError
from shortener.services.allocator import ShortCodeAllocator
from shortener.services.code_generator import BASE62_ALPHABET, CodeGenerator

from tests.helpers import BlindStore, ReplayGenerator, make_store


@pytest.mark.asyncio
class TestShortCodeAllocator:
    """Test allocation against a real store."""

    async def test_allocate_returns_stored_record(self, store):
        allocator = ShortCodeAllocator(store, CodeGenerator(length=7))

        record = await allocator.allocate("https://example.com/a")

        assert len(record.short_code) == 7
        assert set(record.short_code) <= set(BASE62_ALPHABET)
        found = await store.lookup(record.short_code)
        assert found.original_url == "https://example.com/a"
        assert allocator.collisions == 0

    async def test_same_url_gets_distinct_codes(self, store):
        allocator = ShortCodeAllocator(store, CodeGenerator())

        first = await allocator.allocate("https://example.com/a")
        second = await allocator.allocate("https://example.com/a")

        assert first.short_code != second.short_code

    async def test_retries_when_existence_check_finds_code(self, store, caplog):
        await store.insert("https://example.com/taken", "AAAAAAA")
        generator = ReplayGenerator(["AAAAAAA", "BBBBBBB"])
        allocator = ShortCodeAllocator(store, generator)

        with caplog.at_level(logging.WARNING, logger="shortener.services.allocator"):
            record = await allocator.allocate("https://example.com/new")

        assert record.short_code == "BBBBBBB"
        assert allocator.collisions == 1
        assert generator.calls == 2
        assert "collision" in caplog.text

    async def test_unique_constraint_violation_is_retried(self, database_url, store):
        """Two workers saw the same code as free; the index rejects the second insert."""
        await store.insert("https://example.com/first-worker", "AAAAAAA")
        blind = BlindStore(database_url, timeout=30.0)
        generator = ReplayGenerator(["AAAAAAA", "AAAAAAA", "CCCCCCC"])
        allocator = ShortCodeAllocator(blind, generator)

        try:
            record = await allocator.allocate("https://example.com/second-worker")
        finally:
            await blind.dispose()

        assert record.short_code == "CCCCCCC"
        assert allocator.collisions == 2
        assert (await store.lookup("AAAAAAA")).original_url == "https://example.com/first-worker"
        assert (await store.lookup("CCCCCCC")).original_url == "https://example.com/second-worker"

    async def test_gives_up_after_max_attempts(self, store, caplog):
        await store.insert("https://example.com/taken", "AAAAAAA")
        allocator = ShortCodeAllocator(store, ReplayGenerator(["AAAAAAA"]), max_attempts=5)

        with caplog.at_level(logging.ERROR, logger="shortener.services.allocator"):
            with pytest.raises(ShortCodeAllocationError) as exc_info:
                await allocator.allocate("https://example.com/new")

        assert exc_info.value.attempts == 5
        assert isinstance(exc_info.value, StoreError)
        assert allocator.collisions == 5
        assert "gave up" in caplog.text

    async def test_zero_max_attempts_means_unbounded(self, store):
        await store.insert("https://example.com/taken", "AAAAAAA")
        codes = ["AAAAAAA"] * 25 + ["ZZZZZZZ"]
        allocator = ShortCodeAllocator(store, ReplayGenerator(codes), max_attempts=0)

        record = await allocator.allocate("https://example.com/new")

        assert record.short_code == "ZZZZZZZ"
        assert allocator.collisions == 25

    async def test_store_failure_aborts_without_retry(self, store, monkeypatch):
        async def broken_exists(short_code):
            raise StoreError("connection refused")

        monkeypatch.setattr(store, "exists", broken_exists)
        generator = ReplayGenerator(["AAAAAAA", "BBBBBBB"])
        allocator = ShortCodeAllocator(store, generator)

        with pytest.raises(StoreError):
            await allocator.allocate("https://example.com/a")
        assert generator.calls == 1

    async def test_no_duplicates_across_concurrent_workers(self, database_url, store):
        """Several independent stores (one per simulated worker) allocate at once."""
        workers = [make_store(database_url) for _ in range(3)]
        # Short codes make real collisions likely: 62**2 = 3844 codes for 300 URLs
        allocators = [
            ShortCodeAllocator(worker, CodeGenerator(length=2), max_attempts=0)
            for worker in workers
        ]

        try:
            records = await asyncio.gather(*(
                allocators[i % len(allocators)].allocate(f"https://example.com/{i}")
                for i in range(300)
            ))
        finally:
            for worker in workers:
                await worker.dispose()

        codes = [record.short_code for record in records]
        assert len(set(codes)) == len(codes) == 300
        for i, record in enumerate(records):
            found = await store.lookup(record.short_code)
            assert found.original_url == f"https://example.com/{i}"


@pytest.mark.slow
@pytest.mark.asyncio
@pytest.mark.skipif(not os.environ.get("RUN_SLOW_TESTS"), reason="set RUN_SLOW_TESTS=1 to run")
async def test_hundred_thousand_concurrent_allocations(store):
    allocator = ShortCodeAllocator(store, CodeGenerator(length=7))
    total, batch = 100_000, 1_000

    codes = set()
    for start in range(0, total, batch):
        records = await asyncio.gather(*(
            allocator.allocate(f"https://example.com/{i}")
            for i in range(start, start + batch)
        ))
        codes.update(record.short_code for record in records)

    assert len(codes) == total
    assert allocator.collisions == 0
