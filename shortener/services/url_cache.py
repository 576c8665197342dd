"""
Accelerator Cache

Bounded in-memory short_code -> original_url map that fronts the store on
the redirect path. One instance per worker process; never shared and
never authoritative, so a miss always falls through to the store.

Eviction is FIFO by insertion order: once full, inserting a new code
drops the code that was inserted earliest, regardless of how often it
was read since. That keeps eviction O(1) with no bookkeeping on reads,
at the price of sometimes evicting a hot entry before a cold one.

Consistency:
    Records are immutable apart from clicks, which the cache does not
    hold, so a cached URL can never be stale. A code created by another
    worker is simply a miss here until this worker looks it up.
"""

import threading
from collections import OrderedDict
from typing import Optional


class UrlCache:
    """
    FIFO-bounded cache of original URLs keyed by short code.

    All operations take a lock so the cache stays consistent when called
    from the event loop and from threadpool workers at the same time.
    """

    def __init__(self, capacity: int = 10000):
        if capacity < 1:
            raise ValueError(f"cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, short_code: str) -> Optional[str]:
        """Return the cached URL, or None. Does not change eviction order."""
        with self._lock:
            original_url = self._entries.get(short_code)
            if original_url is None:
                self.misses += 1
            else:
                self.hits += 1
            return original_url

    def put(self, short_code: str, original_url: str) -> None:
        """
        Cache a mapping.

        Re-putting a present code updates its value in place and keeps
        its original insertion position.
        """
        with self._lock:
            if short_code in self._entries:
                self._entries[short_code] = original_url
                return
            if len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
                self.evictions += 1
            self._entries[short_code] = original_url

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, short_code: object) -> bool:
        return short_code in self._entries

    def stats(self) -> dict:
        """
        Get cache statistics for monitoring.

        Returns:
            Dictionary with cache metrics
        """
        with self._lock:
            return {
                "capacity": self.capacity,
                "size": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }
