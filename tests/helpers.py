"""Shared test doubles and builders."""

from typing import Iterable, List, Optional

from shortener.db.adapters import SQLiteAdapter
from shortener.db.store import UrlStore


def make_store(database_url: str, timeout: Optional[float] = 30.0) -> UrlStore:
    return UrlStore(
        database_url,
        adapter=SQLiteAdapter(pool_size=5, max_overflow=10),
        timeout=timeout,
    )


class ReplayGenerator:
    """Code generator that hands out a fixed sequence of codes."""

    def __init__(self, codes: Iterable[str], length: int = 7):
        self.codes: List[str] = list(codes)
        self.length = length
        self.calls = 0

    def generate(self) -> str:
        code = self.codes[min(self.calls, len(self.codes) - 1)]
        self.calls += 1
        return code


class BlindStore(UrlStore):
    """
    Store whose existence check always answers "free".

    Simulates the window between another worker's check and insert, so
    duplicates are only caught by the unique index.
    """

    async def exists(self, short_code: str) -> bool:
        return False
