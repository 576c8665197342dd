"""
Worker Context Manager

This module manages the per-process component instances of a worker.
The context is built once per worker process on application startup and
shared across all requests handled by that process.

Design:
- One context per process: store (with its connection pool), cache,
  code generator, allocator, click accumulator and URL service
- Built on startup, torn down on shutdown, never persisted across restarts
- Workers never share a context; a worker restarted by the supervisor
  starts with an empty cache
- Schema initialization failure is fatal for the worker
"""

import logging
from dataclasses import dataclass
from typing import Optional

from shortener.core.exceptions import ServiceUnavailableError, StoreInitializationError
from shortener.core.setting import Settings, settings as default_settings
from shortener.db.store import UrlStore
from shortener.services.allocator import ShortCodeAllocator
from shortener.services.click_accumulator import ClickAccumulator
from shortener.services.code_generator import CodeGenerator
from shortener.services.url_cache import UrlCache
from shortener.services.url_service import URLShorteningService

logger = logging.getLogger(__name__)


@dataclass
class WorkerContext:
    """Everything one worker process needs to serve requests."""
    store: UrlStore
    cache: UrlCache
    generator: CodeGenerator
    allocator: ShortCodeAllocator
    clicks: ClickAccumulator
    url_service: URLShorteningService


# Global context instance (initialized on startup)
_context: Optional[WorkerContext] = None


def build_worker_context(
    settings: Optional[Settings] = None,
    store: Optional[UrlStore] = None,
) -> WorkerContext:
    """
    Wire up the components for one worker.

    Args:
        settings: Settings to read sizes and limits from
        store: Pre-built store (tests); built from settings otherwise
    """
    settings = settings or default_settings
    store = store or UrlStore.from_settings(settings)

    cache = UrlCache(capacity=settings.CACHE_CAPACITY)
    generator = CodeGenerator(length=settings.SHORT_CODE_LENGTH)
    allocator = ShortCodeAllocator(
        store,
        generator,
        max_attempts=settings.SHORT_CODE_MAX_ATTEMPTS,
    )
    clicks = ClickAccumulator(store)
    url_service = URLShorteningService(store, allocator, cache, clicks)

    return WorkerContext(
        store=store,
        cache=cache,
        generator=generator,
        allocator=allocator,
        clicks=clicks,
        url_service=url_service,
    )


def get_worker_context() -> Optional[WorkerContext]:
    """
    Get the context of this worker process.

    Returns:
        WorkerContext if initialized, None otherwise
    """
    return _context


async def get_url_service() -> URLShorteningService:
    """
    FastAPI dependency returning this worker's URL service.

    Raises:
        ServiceUnavailableError: If the worker has not finished startup
    """
    if _context is None:
        raise ServiceUnavailableError("url_service")
    return _context.url_service


async def initialize_worker(
    settings: Optional[Settings] = None,
    store: Optional[UrlStore] = None,
) -> WorkerContext:
    """
    Build the worker context and initialize the database schema.

    Raises:
        StoreInitializationError: The schema could not be initialized;
            the worker must not serve requests and exits
    """
    global _context

    if _context is not None:
        logger.warning("Worker context already initialized")
        return _context

    context = build_worker_context(settings, store)
    try:
        await context.store.initialize()
    except StoreInitializationError:
        await context.store.dispose()
        logger.critical("Worker cannot start without a database schema")
        raise

    _context = context
    logger.info(
        f"Worker context initialized: "
        f"code_length={context.generator.length}, "
        f"cache_capacity={context.cache.capacity}"
    )
    return context


async def shutdown_worker() -> None:
    """Wait for in-flight click increments, then close the store."""
    global _context

    context = _context
    if context is None:
        return
    _context = None

    logger.info(f"Shutting down worker context ({context.clicks.pending} pending clicks)")
    await context.clicks.drain()
    await context.store.dispose()
