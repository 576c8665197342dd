"""
Short Code Allocator

Turns a URL into a stored record under a code nobody else holds.

The existence check before the insert is only a fast path: two workers
(or two requests in the same worker) can both see a candidate as free.
The unique index on urls.short_code is what actually keeps codes unique,
and an insert it rejects is retried with a fresh candidate.

Attempts are capped (SHORT_CODE_MAX_ATTEMPTS). At the default length a
single collision is already rare, so running out of attempts points at
a broken store or generator rather than bad luck.
"""

import logging
from typing import Optional

from shortener.core.exceptions import ShortCodeAllocationError, ShortCodeCollisionError
from shortener.db.models import UrlRecord
from shortener.db.store import UrlStore
from shortener.services.code_generator import CodeGenerator

logger = logging.getLogger(__name__)


class ShortCodeAllocator:
    """Allocates an unused short code and stores the URL under it."""

    def __init__(
        self,
        store: UrlStore,
        generator: CodeGenerator,
        max_attempts: Optional[int] = 10,
    ):
        """
        Args:
            store: Persistent store holding the unique index
            generator: Source of candidate codes
            max_attempts: Candidates tried per call; None or 0 retries forever
        """
        self.store = store
        self.generator = generator
        self.max_attempts = max_attempts or None
        self.collisions = 0

    async def allocate(self, original_url: str) -> UrlRecord:
        """
        Store ``original_url`` under a newly allocated code.

        Returns:
            The inserted UrlRecord

        Raises:
            ShortCodeAllocationError: No free code within max_attempts
            StoreError: Any store failure other than a code collision
        """
        attempts = 0
        while self.max_attempts is None or attempts < self.max_attempts:
            attempts += 1
            candidate = self.generator.generate()

            if await self.store.exists(candidate):
                self._collided(candidate, attempts, "existence check")
                continue

            try:
                return await self.store.insert(original_url, candidate)
            except ShortCodeCollisionError:
                self._collided(candidate, attempts, "insert")

        logger.error(f"Short code allocation gave up after {attempts} attempts")
        raise ShortCodeAllocationError(attempts)

    def _collided(self, candidate: str, attempt: int, stage: str) -> None:
        self.collisions += 1
        logger.warning(
            f"Short code collision on {stage}: {candidate} (attempt {attempt}), retrying"
        )
