"""
Factory for creating cache instances.
"""

import logging
from enum import Enum

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from cached_shortener.config import Settings, settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Simple factory for creating cache instances.

    The caller owns the returned instance and closes it on shutdown.
    """

    @classmethod
    async def create(cls, backend: CacheBackend, config: Settings = settings) -> CacheStrategy:
        """
        Create a cache instance.

        Args:
            backend: Type of cache backend (from enum)
            config: Settings providing redis_url and timeouts

        Returns:
            Cache instance; falls back to in-memory if Redis is unreachable
        """
        if backend == CacheBackend.REDIS:
            redis_client = aioredis.from_url(
                config.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )

            try:
                # Test connection immediately
                await redis_client.ping()
            except (RedisError, OSError) as e:
                logger.warning("Redis connection failed (%s); falling back to in-memory cache", e)
                await redis_client.aclose()
                return InMemoryCache()

            logger.info("Redis cache initialized")
            return RedisCache(redis_client)

        if backend == CacheBackend.MEMORY:
            logger.info("In-memory cache initialized")
            return InMemoryCache()

        if backend == CacheBackend.NULL:
            logger.info("Null cache initialized")
            return NullCache()

        raise ValueError(f"Unknown cache backend: {backend}")
