"""
Tests for the redirect resolver and click accounting.
"""

import asyncio
import logging

import pytest

from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.cache.strategies import NullCache
from cached_shortener.errors import StorageUnavailable
from cached_shortener.services.redirect import RedirectResolver

QUEUE_NAME = "url_clicks"


async def clicks_of(store, short_code):
    return (await store.get_by_short_code(short_code)).clicks


class TestCacheMiss:

    async def test_records_click_synchronously(self, store, resolver, cache_policy, click_queue):
        await store.create("https://example.com/a", "abcDEF12")

        assert await resolver.resolve("abcDEF12") == "https://example.com/a"

        assert await clicks_of(store, "abcDEF12") == 1
        assert len(await store.click_history("abcDEF12")) == 1
        assert await click_queue.get_queue_length(QUEUE_NAME) == 0
        assert await cache_policy.get_short("abcDEF12") == "https://example.com/a"

    async def test_drops_analytics(self, store, resolver, cache_policy):
        await store.create("https://example.com/a", "abcDEF12")
        await cache_policy.set_analytics({"totalUrls": 1})

        await resolver.resolve("abcDEF12")

        assert await cache_policy.get_analytics() is None

    async def test_unknown_code(self, store, resolver, cache_policy, memory_cache):
        await cache_policy.set_analytics({"totalUrls": 0})

        assert await resolver.resolve("doesnotexist") is None

        assert await memory_cache.get("short:doesnotexist") is None
        # Nothing was mutated, so analytics stay cached
        assert await cache_policy.get_analytics() == {"totalUrls": 0}

    async def test_lookup_failure_raises(self, store, resolver, monkeypatch):
        async def unavailable(short_code):
            raise StorageUnavailable("connection refused")

        monkeypatch.setattr(store, "get_by_short_code", unavailable)

        with pytest.raises(StorageUnavailable, match="Failed to resolve short URL"):
            await resolver.resolve("abcDEF12")

    async def test_increment_failure_still_redirects(self, store, resolver, cache_policy, monkeypatch):
        await store.create("https://example.com/a", "abcDEF12")

        async def unavailable(short_code, at=None):
            raise StorageUnavailable("write failed")

        monkeypatch.setattr(store, "record_click", unavailable)

        assert await resolver.resolve("abcDEF12") == "https://example.com/a"
        assert await cache_policy.get_short("abcDEF12") == "https://example.com/a"


class TestCacheHit:

    async def test_click_is_queued_not_applied(self, store, resolver, cache_policy, click_queue):
        await store.create("https://example.com/a", "abcDEF12")
        await cache_policy.set_short("abcDEF12", "https://example.com/a")
        await cache_policy.set_analytics({"totalUrls": 1})

        assert await resolver.resolve("abcDEF12") == "https://example.com/a"

        assert await clicks_of(store, "abcDEF12") == 0
        assert await click_queue.get_queue_length(QUEUE_NAME) == 1
        assert await cache_policy.get_analytics() is None

    async def test_does_not_touch_store(self, store, resolver, cache_policy, monkeypatch):
        await cache_policy.set_short("abcDEF12", "https://example.com/a")

        async def store_must_not_be_used(*args, **kwargs):
            raise AssertionError("cache hit must not touch the store")

        monkeypatch.setattr(store, "get_by_short_code", store_must_not_be_used)
        monkeypatch.setattr(store, "record_click", store_must_not_be_used)

        assert await resolver.resolve("abcDEF12") == "https://example.com/a"

    async def test_worker_applies_queued_clicks(self, store, resolver, cache_policy, click_worker):
        await store.create("https://example.com/a", "abcDEF12")
        await cache_policy.set_short("abcDEF12", "https://example.com/a")

        for _ in range(5):
            await resolver.resolve("abcDEF12")
        await click_worker.drain()

        assert await clicks_of(store, "abcDEF12") == 5
        assert len(await store.click_history("abcDEF12")) == 5

    async def test_queue_failure_still_redirects(self, store, cache_policy, click_queue, monkeypatch):
        resolver = RedirectResolver(store, cache_policy, click_queue, queue_name=QUEUE_NAME)
        await cache_policy.set_short("abcDEF12", "https://example.com/a")

        async def rejected(queue_name, message):
            return False

        monkeypatch.setattr(click_queue, "publish", rejected)

        assert await resolver.resolve("abcDEF12") == "https://example.com/a"

    async def test_hanging_queue_does_not_hold_redirect(self, store, cache_policy, click_queue, monkeypatch, caplog):
        resolver = RedirectResolver(store, cache_policy, click_queue, queue_name=QUEUE_NAME, publish_timeout=0.05)
        await cache_policy.set_short("abcDEF12", "https://example.com/a")

        async def hanging(queue_name, message):
            await asyncio.sleep(10)

        monkeypatch.setattr(click_queue, "publish", hanging)

        with caplog.at_level(logging.WARNING, logger="cached_shortener.services.redirect"):
            resolved = await asyncio.wait_for(resolver.resolve("abcDEF12"), timeout=1)

        assert resolved == "https://example.com/a"
        assert "timed out" in caplog.text


class TestClickAccounting:

    async def test_mixed_paths_count_every_resolution(self, store, resolver, click_worker):
        await store.create("https://example.com/a", "abcDEF12")

        # First resolution misses and populates the cache, the rest hit
        for _ in range(10):
            assert await resolver.resolve("abcDEF12") == "https://example.com/a"
        await click_worker.drain()

        assert await clicks_of(store, "abcDEF12") == 10
        assert len(await store.click_history("abcDEF12")) == 10

    async def test_concurrent_increments_are_not_lost(self, store, click_queue):
        await store.create("https://example.com/a", "abcDEF12")
        resolver = RedirectResolver(store, URLCachePolicy(NullCache()), click_queue, queue_name=QUEUE_NAME)

        results = await asyncio.gather(*(resolver.resolve("abcDEF12") for _ in range(8)))

        assert results == ["https://example.com/a"] * 8
        assert await clicks_of(store, "abcDEF12") == 8
        assert len(await store.click_history("abcDEF12")) == 8


class TestDegradation:

    async def test_resolves_without_cache(self, store, failing_policy, click_queue):
        await store.create("https://example.com/a", "abcDEF12")
        resolver = RedirectResolver(store, failing_policy, click_queue, queue_name=QUEUE_NAME)

        assert await resolver.resolve("abcDEF12") == "https://example.com/a"
        assert await resolver.resolve("abcDEF12") == "https://example.com/a"

        assert await clicks_of(store, "abcDEF12") == 2
        assert await click_queue.get_queue_length(QUEUE_NAME) == 0
