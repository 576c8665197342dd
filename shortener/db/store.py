"""
Persistent URL Store

The durable source of truth for short code -> URL mappings and click counts.
One UrlStore (engine + connection pool) is built per worker process.

Error contract:
- Every call is bounded by ``timeout``; a call that runs out of time raises
  StoreTimeoutError, never a "not found" result
- Driver and SQLAlchemy errors are wrapped in StoreError with the original
  exception chained
- insert() raises ShortCodeCollisionError when the unique index on
  short_code rejected the row, which callers treat as "pick another code"
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, select

from shortener.core.exceptions import (
    ShortCodeCollisionError,
    StoreError,
    StoreInitializationError,
    StoreTimeoutError,
)
from shortener.core.setting import Settings, settings as default_settings
from shortener.db.adapters import get_database_adapter
from shortener.db.interface import DatabaseAdapter
from shortener.db.models import UrlRecord
from shortener.db.session import build_adapter, create_session_maker

logger = logging.getLogger(__name__)


class UrlStore:
    """
    Async persistence for UrlRecord rows.

    Each operation opens its own session from the pool, so concurrent
    requests in the same worker never share a transaction.
    """

    def __init__(
        self,
        database_url: str,
        adapter: Optional[DatabaseAdapter] = None,
        timeout: Optional[float] = 5.0,
    ):
        """
        Args:
            database_url: SQLAlchemy async URL
            adapter: Database adapter (chosen from the URL when omitted)
            timeout: Per-call deadline in seconds, None disables it
        """
        self.database_url = database_url
        self.adapter = adapter or get_database_adapter(database_url)
        self.timeout = timeout
        self.engine = self.adapter.create_engine(database_url)
        self.session_maker = create_session_maker(self.engine)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "UrlStore":
        settings = settings or default_settings
        return cls(
            settings.database_url,
            adapter=build_adapter(settings),
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )

    async def initialize(self) -> None:
        """
        Create the database (where needed) and the urls table if absent.

        Idempotent. Raises StoreInitializationError on any failure; the
        worker treats that as fatal.
        """
        try:
            await self.adapter.ensure_database(self.database_url)
            async with self.engine.begin() as conn:
                await conn.run_sync(
                    SQLModel.metadata.create_all, tables=[UrlRecord.__table__]
                )
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database initialization failed: {e}", exc_info=True)
            raise StoreInitializationError(
                f"schema initialization failed: {e}", original_error=e
            ) from e
        logger.info("Database initialized successfully")

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()

    async def exists(self, short_code: str) -> bool:
        return await self._run("exists", self._exists, short_code)

    async def insert(self, original_url: str, short_code: str) -> UrlRecord:
        """
        Insert a new record.

        Raises:
            ShortCodeCollisionError: short_code is already taken
            StoreError: any other failure
        """
        try:
            return await self._run("insert", self._insert, original_url, short_code)
        except StoreError as e:
            if not isinstance(e.original_error, IntegrityError):
                raise
            # Integrity errors carry dialect specific codes; asking the
            # table directly tells a short_code clash from anything else.
            if await self._run("exists", self._exists, short_code):
                raise ShortCodeCollisionError(short_code, e.original_error) from e
            raise

    async def lookup(self, short_code: str) -> Optional[UrlRecord]:
        return await self._run("lookup", self._lookup, short_code)

    async def increment_clicks(self, short_code: str) -> bool:
        """
        Atomically add one to the click counter.

        Returns:
            True if a row was updated, False if the code is unknown
        """
        return await self._run("increment_clicks", self._increment_clicks, short_code)

    async def _run(
        self,
        operation: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        try:
            return await asyncio.wait_for(func(*args), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError(operation, self.timeout) from e
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"{operation} failed: {e}", original_error=e) from e

    async def _exists(self, short_code: str) -> bool:
        async with self.session_maker() as session:
            statement = select(UrlRecord.id).where(UrlRecord.short_code == short_code).limit(1)
            result = await session.exec(statement)
            return result.first() is not None

    async def _insert(self, original_url: str, short_code: str) -> UrlRecord:
        record = UrlRecord(original_url=original_url, short_code=short_code)
        async with self.session_maker() as session:
            session.add(record)
            try:
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                raise
        return record

    async def _lookup(self, short_code: str) -> Optional[UrlRecord]:
        async with self.session_maker() as session:
            statement = select(UrlRecord).where(UrlRecord.short_code == short_code)
            result = await session.exec(statement)
            return result.first()

    async def _increment_clicks(self, short_code: str) -> bool:
        statement = (
            update(UrlRecord)
            .where(UrlRecord.short_code == short_code)
            .values(clicks=UrlRecord.clicks + 1)
        )
        async with self.session_maker() as session:
            result = await session.exec(statement)
            await session.commit()
            return result.rowcount > 0
