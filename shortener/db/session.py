"""
Database Session Management with Connection Pooling

This module builds the async engine and session factory for one worker
process. Nothing is created at import time: engines hold sockets and must
be created inside the process (and event loop) that uses them, after the
supervisor has spawned it.

Key Features:
- Database abstraction: adapter chosen from the URL's dialect
- Connection pooling: sized per worker from settings
- Async session management: one short-lived session per store operation
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortener.core.setting import Settings, settings as default_settings
from shortener.db.adapters import get_database_adapter
from shortener.db.interface import DatabaseAdapter


def build_adapter(settings: Optional[Settings] = None) -> DatabaseAdapter:
    settings = settings or default_settings
    return get_database_adapter(
        settings.database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_POOL_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create async session factory bound to ``engine``.

    expire_on_commit=False keeps returned records readable after the
    session that loaded them is closed.
    """
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
