"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

Strategies are thin: they store strings under keys with a TTL and report
backend failure as CacheDegraded. Key naming, TTLs and the best-effort
policy live in cache/policy.py.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from cached_shortener.errors import CacheDegraded


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations involve I/O (network for Redis).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Returns:
            Cached value or None if absent or expired
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> bool:
        """Set value in cache with TTL (seconds)"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Returns:
            True if deleted, False if key didn't exist
        """
        pass

    async def close(self) -> None:
        """Release backend connections"""
        return None


class RedisCache(CacheStrategy):
    """
    Redis cache implementation (redis.asyncio, non-blocking I/O).

    Shared by every API process; Redis enforces the TTLs itself.
    """

    def __init__(self, redis_client: aioredis.Redis):
        """
        Args:
            redis_client: async Redis client created with decode_responses=True
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except (RedisError, OSError) as e:
            raise CacheDegraded(f"Redis get failed: {e}") from e

    async def set(self, key: str, value: str, ttl: int) -> bool:
        try:
            return bool(await self.redis.set(key, value, ex=ttl))
        except (RedisError, OSError) as e:
            raise CacheDegraded(f"Redis set failed: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.redis.delete(key))
        except (RedisError, OSError) as e:
            raise CacheDegraded(f"Redis delete failed: {e}") from e

    async def close(self) -> None:
        await self.redis.aclose()


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using a Python dict.

    Good for development and testing. Not shared between processes and
    lost on restart. Expiry is checked on read against an injectable
    monotonic clock; keys that are never read again are swept by set()
    at most once per sweep_interval seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._cache.items() if now >= expires_at]
        for key in expired:
            del self._cache[key]
        self._next_sweep = now + self.sweep_interval

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> bool:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        self._cache[key] = (value, now + ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Every read misses, so every operation runs against the durable store.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return False
