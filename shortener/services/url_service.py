"""
URL Shortening Service

This service handles the core business logic of the URL shortener:
- Validating URLs and allocating unique short codes for them
- Resolving short codes for redirects through the accelerator cache
- Counting clicks in the background
- Reporting per-code statistics from the store

Design Decisions:
- Random base62 codes with a storage-enforced unique index
- Cache-aside reads: cache first, store on miss, then populate the cache
- Statistics always come from the store since the cache holds no counts
- Click counting never blocks or fails a redirect
"""

import logging
from typing import Optional

from shortener.core.exceptions import InvalidURLError, ShortCodeNotFoundError
from shortener.core.validators import MAX_URL_LENGTH, is_valid_url, sanitize_short_code
from shortener.db.models import UrlRecord
from shortener.db.store import UrlStore
from shortener.services.allocator import ShortCodeAllocator
from shortener.services.click_accumulator import ClickAccumulator
from shortener.services.url_cache import UrlCache

logger = logging.getLogger(__name__)


class URLShorteningService:
    """
    Core business logic for URL shortening.

    Built once per worker process; every request in that worker shares
    the same store, cache and accumulator.
    """

    def __init__(
        self,
        store: UrlStore,
        allocator: ShortCodeAllocator,
        cache: UrlCache,
        clicks: ClickAccumulator,
    ):
        self.store = store
        self.allocator = allocator
        self.cache = cache
        self.clicks = clicks

    async def create_short_url(self, original_url) -> UrlRecord:
        """
        Create a new short URL.

        Every call allocates a new code, even for a URL shortened before.

        Raises:
            InvalidURLError: If URL is missing or not an absolute http(s) URL
            StoreError: If the store fails or no free code could be found
        """
        if original_url is None or original_url == "":
            raise InvalidURLError(original_url, reason="URL is required")

        if not is_valid_url(original_url):
            raise InvalidURLError(
                original_url,
                reason=(
                    "Invalid URL format. URL must be an absolute http:// or https:// URL "
                    f"with a host, at most {MAX_URL_LENGTH} characters"
                ),
            )

        record = await self.allocator.allocate(original_url)
        self.cache.put(record.short_code, record.original_url)
        logger.debug(f"Shortened {record.original_url} to {record.short_code}")
        return record

    async def resolve(self, short_code: str) -> str:
        """
        Get the original URL for a redirect.

        Raises:
            ShortCodeNotFoundError: If the code is unknown
            StoreError: If the store lookup fails
        """
        short_code = self._known_format(short_code)

        original_url = self.cache.get(short_code)
        if original_url is not None:
            return original_url

        record = await self.store.lookup(short_code)
        if record is None:
            raise ShortCodeNotFoundError(short_code)

        self.cache.put(record.short_code, record.original_url)
        return record.original_url

    async def redirect(self, short_code: str) -> str:
        """Resolve ``short_code`` and count the click in the background."""
        short_code = self._known_format(short_code)
        original_url = await self.resolve(short_code)
        self.clicks.record(short_code)
        return original_url

    @staticmethod
    def _known_format(short_code: str) -> str:
        # Codes outside [0-9a-zA-Z]{1,20} can never have been issued
        sanitized = sanitize_short_code(short_code)
        if sanitized is None:
            raise ShortCodeNotFoundError(short_code)
        return sanitized

    async def get_stats(self, short_code: str) -> Optional[dict]:
        """
        Get statistics for a short URL.

        Returns:
            Dictionary with short_code, original_url, created_at and
            clicks, or None if the code is unknown.
        """
        sanitized = sanitize_short_code(short_code)
        if sanitized is None:
            return None

        record = await self.store.lookup(sanitized)
        if record is None:
            return None

        return {
            "short_code": record.short_code,
            "original_url": record.original_url,
            "created_at": record.created_at_utc.isoformat(),
            "clicks": record.clicks,
        }
