"""
Test configuration and fixtures for the URL shortener.

Every test gets its own SQLite database file under tmp_path. Rate
limiting is switched off before the application modules are imported,
since the limiter reads its settings at import time.
"""

import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENV_SETTING"] = "dev"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from shortener.core import worker_context  # noqa: E402
from shortener.core.setting import Settings  # noqa: E402
from shortener.main import app  # noqa: E402
from tests.helpers import make_store  # noqa: E402


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'urls.db'}"


@pytest.fixture
def test_settings(database_url) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=database_url,
        CACHE_CAPACITY=100,
        DB_POOL_SIZE=5,
        DB_POOL_MAX_OVERFLOW=10,
        STORE_TIMEOUT_SECONDS=30.0,
        RATE_LIMIT_ENABLED=False,
    )


@pytest_asyncio.fixture
async def store(database_url):
    """Initialized store on a fresh database."""
    url_store = make_store(database_url)
    await url_store.initialize()
    try:
        yield url_store
    finally:
        await url_store.dispose()


@pytest_asyncio.fixture
async def context(test_settings):
    """Worker context as the application startup builds it."""
    ctx = await worker_context.initialize_worker(test_settings)
    try:
        yield ctx
    finally:
        await worker_context.shutdown_worker()


@pytest_asyncio.fixture
async def client(context):
    """HTTP client talking to the app in-process, on the test's event loop."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
