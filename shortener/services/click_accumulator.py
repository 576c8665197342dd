"""
Click Accumulator

Counts redirects without making the redirect wait for the database.

record() starts the increment as a detached task and returns at once.
The policy is best effort: a failed increment is logged and dropped,
with no retry, no queue and no backpressure. Under store overload click
counts can therefore undercount; they are analytics, not state the
service depends on.
"""

import asyncio
import logging
from typing import Set

from shortener.db.store import UrlStore

logger = logging.getLogger(__name__)


class ClickAccumulator:
    """
    Fire-and-forget click counter.

    In-flight tasks are kept in a set until they finish, because the
    event loop only holds weak references to tasks.
    """

    def __init__(self, store: UrlStore):
        self.store = store
        self._pending: Set[asyncio.Task] = set()

        self.recorded = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(self, short_code: str) -> None:
        """
        Schedule a click increment for ``short_code``.

        Must be called from a running event loop. Never raises because of
        the increment itself.
        """
        task = asyncio.get_running_loop().create_task(
            self._increment(short_code),
            name=f"click:{short_code}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every scheduled increment has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _increment(self, short_code: str) -> None:
        try:
            updated = await self.store.increment_clicks(short_code)
        except Exception as e:
            self.failed += 1
            logger.error(
                f"Failed to increment click count for {short_code}: {str(e)}",
                exc_info=True
            )
            return

        self.recorded += 1
        if not updated:
            logger.debug(f"Click increment matched no row for {short_code}")
