"""
Database Adapters

Implementations of the DatabaseAdapter interface:

- SQLiteAdapter: file-based database for local development and tests
- MySQLAdapter: server-based database for production deployments

get_database_adapter() picks the adapter from the URL's dialect, so the
rest of the code never checks which database it talks to.
"""

import logging
from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool, Pool, StaticPool

from shortener.db.interface import DatabaseAdapter

logger = logging.getLogger(__name__)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    Key characteristics:
    - File-based (single .db file), no server required
    - Single writer at a time; WAL mode lets readers proceed during writes
    - A busy timeout makes concurrent writers wait for the lock instead
      of failing immediately
    - In-memory databases share one connection (StaticPool), otherwise
      every pooled connection would see a different empty database
    """

    BUSY_TIMEOUT_SECONDS = 30

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        if self.is_memory_database(database_url):
            return create_async_engine(
                database_url,
                poolclass=StaticPool,
                connect_args=self.get_connect_args(),
                **{"echo": False, **kwargs}
            )
        return super().create_engine(database_url, **kwargs)

    def configure_engine(self, engine: AsyncEngine) -> None:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    def get_pool_class(self) -> Optional[type[Pool]]:
        # Default async queue pool, sized by get_engine_kwargs()
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": self.BUSY_TIMEOUT_SECONDS,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,  # Set to True only for SQL debugging in development
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
        }

    def get_dialect_name(self) -> str:
        return "sqlite"

    @staticmethod
    def is_memory_database(database_url: str) -> bool:
        return make_url(database_url).database in (None, "", ":memory:")


class MySQLAdapter(DatabaseAdapter):
    """
    MySQL database adapter implementation (aiomysql driver).

    - Bounded connection pool per worker process
    - pool_pre_ping replaces connections the server closed while idle
    - The database itself is created on first start if it does not exist
    """

    POOL_RECYCLE_SECONDS = 3600
    CONNECT_TIMEOUT_SECONDS = 10

    def get_pool_class(self) -> Optional[type[Pool]]:
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {"connect_timeout": self.CONNECT_TIMEOUT_SECONDS}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": self.POOL_RECYCLE_SECONDS,
        }

    def get_dialect_name(self) -> str:
        return "mysql"

    async def ensure_database(self, database_url: str) -> None:
        """Run CREATE DATABASE IF NOT EXISTS through a server-level connection."""
        url = make_url(database_url)
        database_name = url.database
        if not database_name:
            return

        server_engine = create_async_engine(
            url.set(database=None),
            poolclass=NullPool,
            connect_args=self.get_connect_args(),
        )
        try:
            async with server_engine.begin() as conn:
                quoted = conn.dialect.identifier_preparer.quote(database_name)
                await conn.execute(text(f"CREATE DATABASE IF NOT EXISTS {quoted}"))
            logger.info(f"Database {database_name} created or already exists")
        finally:
            await server_engine.dispose()


_ADAPTERS: dict[str, type[DatabaseAdapter]] = {
    "sqlite": SQLiteAdapter,
    "mysql": MySQLAdapter,
}


def get_database_adapter(database_url: str, **pool_options) -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a URL.

    Args:
        database_url: SQLAlchemy async URL (sqlite+aiosqlite://, mysql+aiomysql://)
        **pool_options: pool_size, max_overflow, pool_timeout

    Returns:
        DatabaseAdapter instance

    Raises:
        ValueError: If the dialect has no adapter
    """
    dialect = DatabaseAdapter.dialect_of(database_url)
    try:
        adapter_class = _ADAPTERS[dialect]
    except KeyError:
        raise ValueError(f"Unsupported database dialect: {dialect}") from None
    return adapter_class(**pool_options)
