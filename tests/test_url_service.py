"""
Tests for the URL shortening service and its input validation.

Service tests run against a real SQLite store with a small cache, so
cache-aside behaviour is checked by dropping cache entries and watching
the service fall back to the store.
"""

import pytest
import pytest_asyncio

from shortener.core.exceptions import InvalidURLError, ShortCodeNotFoundError, StoreError
from shortener.core.validators import MAX_URL_LENGTH, is_valid_url, sanitize_short_code
from shortener.services.allocator import ShortCodeAllocator
from shortener.services.click_accumulator import ClickAccumulator
from shortener.services.code_generator import CodeGenerator
from shortener.services.url_cache import UrlCache
from shortener.services.url_service import URLShorteningService


class TestURLValidation:
    """Test URL validation function."""

    def test_valid_urls(self):
        """Test that valid URLs are accepted."""
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
            "HTTPS://EXAMPLE.COM/upper",
            "https://example.com/" + "a" * (MAX_URL_LENGTH - len("https://example.com/")),
        ]
        for url in valid_urls:
            assert is_valid_url(url), f"Should be valid: {url}"

    def test_invalid_urls(self):
        """Test that invalid URLs are rejected."""
        invalid_urls = [
            "not a url",
            "not-a-url",
            "ftp://example.com",
            "mailto:someone@example.com",
            "urn:isbn:0451450523",
            "file:///etc/passwd",
            "javascript:alert(1)",
            "example.com",
            "/relative/path",
            "",
            "http://",
            "http://:80/path",
            "http://example.com:99999/",
            "http://example.com:port/",
            "https://exa mple.com/",
            "https://example.com/" + "a" * MAX_URL_LENGTH,
            None,
            42,
        ]
        for url in invalid_urls:
            assert not is_valid_url(url), f"Should be invalid: {url!r}"


class TestShortCodeSanitization:

    @pytest.mark.parametrize("raw,expected", [
        ("abc1234", "abc1234"),
        ("  abc1234 ", "abc1234"),
        ("A", "A"),
        ("a" * 20, "a" * 20),
    ])
    def test_accepts_base62(self, raw, expected):
        assert sanitize_short_code(raw) == expected

    @pytest.mark.parametrize("raw", [
        "", None, "abc-123", "abc_123", "abc 123", "a" * 21, "../etc", "abc%20",
    ])
    def test_rejects_everything_else(self, raw):
        assert sanitize_short_code(raw) is None


@pytest_asyncio.fixture
async def service(store):
    clicks = ClickAccumulator(store)
    yield URLShorteningService(
        store,
        ShortCodeAllocator(store, CodeGenerator(length=7)),
        UrlCache(capacity=2),
        clicks,
    )
    await clicks.drain()


@pytest.mark.asyncio
class TestURLShorteningService:
    """Test the service against a real store."""

    async def test_create_short_url(self, service, store):
        record = await service.create_short_url("https://example.com/a")

        assert len(record.short_code) == 7
        assert record.original_url == "https://example.com/a"
        assert record.short_code in service.cache
        assert (await store.lookup(record.short_code)).original_url == "https://example.com/a"

    async def test_url_is_stored_verbatim(self, service):
        url = "HTTPS://Example.com/Path?q=1&b=%20x#frag"
        record = await service.create_short_url(url)
        assert await service.resolve(record.short_code) == url

    @pytest.mark.parametrize("url", [None, ""])
    async def test_missing_url(self, service, url):
        with pytest.raises(InvalidURLError) as exc_info:
            await service.create_short_url(url)
        assert exc_info.value.reason == "URL is required"

    async def test_invalid_url_allocates_nothing(self, service):
        with pytest.raises(InvalidURLError) as exc_info:
            await service.create_short_url("not a url")

        assert "Invalid URL format" in exc_info.value.reason
        assert service.allocator.collisions == 0
        assert len(service.cache) == 0

    async def test_cached_code_is_answered_without_store(self, service, monkeypatch):
        record = await service.create_short_url("https://example.com/a")

        async def fail_lookup(short_code):
            raise AssertionError("store should not be queried")

        monkeypatch.setattr(service.store, "lookup", fail_lookup)
        hits = service.cache.stats()["hits"]

        assert await service.resolve(record.short_code) == "https://example.com/a"
        assert await service.redirect(record.short_code) == "https://example.com/a"
        assert service.cache.stats()["hits"] == hits + 2

    async def test_resolve_falls_back_to_store(self, service):
        record = await service.create_short_url("https://example.com/a")
        service.cache.clear()

        assert await service.resolve(record.short_code) == "https://example.com/a"
        assert record.short_code in service.cache

    async def test_resolve_after_fifo_eviction(self, service):
        records = [
            await service.create_short_url(f"https://example.com/{i}")
            for i in range(3)
        ]

        assert records[0].short_code not in service.cache
        assert await service.resolve(records[0].short_code) == "https://example.com/0"

    async def test_resolve_unknown_code(self, service):
        with pytest.raises(ShortCodeNotFoundError):
            await service.resolve("nope123")

    async def test_malformed_code_never_reaches_store(self, service, monkeypatch):
        async def fail_lookup(short_code):
            raise AssertionError("store should not be queried")

        monkeypatch.setattr(service.store, "lookup", fail_lookup)

        with pytest.raises(ShortCodeNotFoundError):
            await service.resolve("bad-code!")
        assert await service.get_stats("bad-code!") is None

    async def test_store_failure_is_not_a_miss(self, service, monkeypatch):
        async def broken_lookup(short_code):
            raise StoreError("lookup failed: database is locked")

        monkeypatch.setattr(service.store, "lookup", broken_lookup)

        with pytest.raises(StoreError):
            await service.resolve("abc1234")

    async def test_redirect_counts_clicks(self, service):
        record = await service.create_short_url("https://example.com/a")

        for _ in range(3):
            assert await service.redirect(record.short_code) == "https://example.com/a"
        await service.clicks.drain()

        stats = await service.get_stats(record.short_code)
        assert stats["clicks"] == 3

    async def test_resolve_does_not_count_clicks(self, service):
        record = await service.create_short_url("https://example.com/a")

        await service.resolve(record.short_code)
        await service.clicks.drain()

        assert (await service.get_stats(record.short_code))["clicks"] == 0

    async def test_get_stats(self, service):
        record = await service.create_short_url("https://example.com/a")

        stats = await service.get_stats(record.short_code)

        assert stats["short_code"] == record.short_code
        assert stats["original_url"] == "https://example.com/a"
        assert stats["clicks"] == 0
        assert stats["created_at"].endswith("+00:00")

    async def test_get_stats_unknown_code(self, service):
        assert await service.get_stats("nope123") is None
