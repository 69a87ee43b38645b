"""
Cache-aside key schema and TTL policy for the three cache relations.

    short:<shortCode>      -> original URL string        (url_ttl, never invalidated)
    original:<originalUrl> -> ShortURLPayload as JSON    (url_ttl, never invalidated)
    analytics              -> analytics summary as JSON  (analytics_ttl, deleted on mutation)

The cache is advisory. Every call goes through _attempt(): a backend failure
or a call exceeding the timeout is logged and turned into a miss (reads) or
False (writes), so callers fall through to the durable store and never fail
or hang because of the cache.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Dict, Optional, TypeVar

from pydantic import ValidationError

from cached_shortener.cache.strategies import CacheStrategy
from cached_shortener.errors import CacheDegraded
from cached_shortener.schemas.url import ShortURLPayload

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANALYTICS_KEY = "analytics"


def short_key(short_code: str) -> str:
    return f"short:{short_code}"


def original_key(original_url: str) -> str:
    return f"original:{original_url}"


class URLCachePolicy:
    """Best-effort access to the short, original and analytics cache entries."""

    def __init__(
        self,
        cache: CacheStrategy,
        url_ttl: int = 3600,
        analytics_ttl: int = 60,
        timeout: float = 0.5,
    ):
        self.cache = cache
        self.url_ttl = url_ttl
        self.analytics_ttl = analytics_ttl
        self.timeout = timeout

    async def _attempt(self, description: str, operation: Awaitable[T], fallback: T) -> T:
        """Attempt a cache call; on failure log and continue with the fallback."""
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except CacheDegraded as e:
            logger.warning("Cache %s failed: %s", description, e)
        except asyncio.TimeoutError:
            logger.warning("Cache %s timed out after %.2fs", description, self.timeout)
        return fallback

    # short:<code>

    async def get_short(self, short_code: str) -> Optional[str]:
        return await self._attempt(
            f"get {short_key(short_code)}", self.cache.get(short_key(short_code)), None
        )

    async def set_short(self, short_code: str, original_url: str) -> bool:
        return await self._attempt(
            f"set {short_key(short_code)}",
            self.cache.set(short_key(short_code), original_url, self.url_ttl),
            False,
        )

    # original:<url>

    async def get_original(self, original_url: str) -> Optional[ShortURLPayload]:
        key = original_key(original_url)
        raw = await self._attempt(f"get {key}", self.cache.get(key), None)
        if raw is None:
            return None
        try:
            return ShortURLPayload.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring malformed cache entry %s", key)
            return None

    async def set_original(self, payload: ShortURLPayload) -> bool:
        key = original_key(payload.original_url)
        return await self._attempt(
            f"set {key}",
            self.cache.set(key, payload.model_dump_json(by_alias=True), self.url_ttl),
            False,
        )

    async def remember(self, payload: ShortURLPayload) -> None:
        """Populate both URL relations for a known mapping."""
        await self.set_original(payload)
        await self.set_short(payload.short_code, payload.original_url)

    # analytics

    async def get_analytics(self) -> Optional[dict]:
        raw = await self._attempt(f"get {ANALYTICS_KEY}", self.cache.get(ANALYTICS_KEY), None)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed cache entry %s", ANALYTICS_KEY)
            return None

    async def set_analytics(self, payload: Dict[str, Any]) -> bool:
        return await self._attempt(
            f"set {ANALYTICS_KEY}",
            self.cache.set(ANALYTICS_KEY, json.dumps(payload), self.analytics_ttl),
            False,
        )

    async def invalidate_analytics(self) -> bool:
        return await self._attempt(
            f"delete {ANALYTICS_KEY}", self.cache.delete(ANALYTICS_KEY), False
        )
