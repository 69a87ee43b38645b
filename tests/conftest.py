"""
Test configuration and fixtures for the URL shortener.
This centralizes all test setup, making individual tests clean.

Every test gets its own SQLite file database (aiosqlite), an in-memory
cache driven by a fake clock and an in-memory click queue.
"""

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine

from main import create_app
from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.cache.strategies import CacheStrategy, InMemoryCache
from cached_shortener.click_processor.click_worker import ClickWorker
from cached_shortener.config import Settings
from cached_shortener.database.connection import (
    close_db,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from cached_shortener.errors import CacheDegraded
from cached_shortener.queue.strategies import InMemoryQueue
from cached_shortener.services.analytics import AnalyticsAggregator
from cached_shortener.services.redirect import RedirectResolver
from cached_shortener.services.short_code_strategies import RandomShortCodeStrategy
from cached_shortener.services.shortening import ShorteningEngine
from cached_shortener.storage.strategies import SQLRecordStore

BASE_URL = "http://sho.rt"
QUEUE_NAME = "url_clicks"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FailingCache(CacheStrategy):
    """Cache whose backend is unreachable."""

    async def get(self, key: str) -> Optional[str]:
        raise CacheDegraded("connection refused")

    async def set(self, key: str, value: str, ttl: int) -> bool:
        raise CacheDegraded("connection refused")

    async def delete(self, key: str) -> bool:
        raise CacheDegraded("connection refused")


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        base_url=BASE_URL,
        cache_backend="memory",
        queue_backend="memory",
        queue_name=QUEUE_NAME,
        click_worker_enabled=False,
        debug=False,
    )


@pytest_asyncio.fixture
async def db_engine(test_settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine_from_settings(test_settings)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def store(db_engine) -> SQLRecordStore:
    return SQLRecordStore(create_session_factory(db_engine))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_cache(clock) -> InMemoryCache:
    return InMemoryCache(clock=clock)


@pytest.fixture
def cache_policy(memory_cache) -> URLCachePolicy:
    return URLCachePolicy(memory_cache, url_ttl=3600, analytics_ttl=60, timeout=0.5)


@pytest.fixture
def failing_policy() -> URLCachePolicy:
    return URLCachePolicy(FailingCache(), timeout=0.5)


@pytest.fixture
def click_queue() -> InMemoryQueue:
    return InMemoryQueue()


@pytest.fixture
def shortening_engine(store, cache_policy) -> ShorteningEngine:
    return ShorteningEngine(store, cache_policy, RandomShortCodeStrategy(), base_url=BASE_URL)


@pytest.fixture
def resolver(store, cache_policy, click_queue) -> RedirectResolver:
    return RedirectResolver(store, cache_policy, click_queue, queue_name=QUEUE_NAME)


@pytest.fixture
def aggregator(store, cache_policy) -> AnalyticsAggregator:
    return AnalyticsAggregator(store, cache_policy)


@pytest.fixture
def click_worker(store, cache_policy, click_queue) -> ClickWorker:
    return ClickWorker(click_queue, store, cache_policy, queue_name=QUEUE_NAME, block_time=0)


@pytest.fixture
def client(test_settings):
    """
    Test client around a freshly built app.
    Entering the context runs the lifespan (tables, cache, queue, services).
    """
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


@pytest.fixture
def uncached_client(test_settings):
    """Test client whose cache never hits: every request takes the store path."""
    uncached = test_settings.model_copy(update={"cache_backend": "null"})
    with TestClient(create_app(uncached)) as test_client:
        yield test_client
