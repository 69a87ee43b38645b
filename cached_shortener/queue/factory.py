"""
Factory for creating queue instances.
"""

import logging
from enum import Enum

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from cached_shortener.config import Settings, settings

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Simple factory for creating queue instances.

    The caller owns the returned instance and closes it on shutdown.
    """

    @classmethod
    async def create(cls, backend: QueueBackend, config: Settings = settings) -> QueueStrategy:
        """
        Create a queue instance.

        Args:
            backend: Type of queue backend (from enum)
            config: Settings providing redis_url and the consumer group

        Returns:
            Queue instance; falls back to in-memory if Redis is unreachable
        """
        if backend == QueueBackend.REDIS_STREAMS:
            redis_client = aioredis.from_url(
                config.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                # Longer than the XREADGROUP block so an idle read never times out
                socket_timeout=config.queue_block_ms / 1000 + 2,
            )

            try:
                # Test connection immediately
                await redis_client.ping()
            except (RedisError, OSError) as e:
                logger.warning("Redis connection failed (%s); falling back to in-memory queue", e)
                await redis_client.aclose()
                return InMemoryQueue()

            logger.info("Redis stream queue initialized")
            return RedisStreamQueue(
                redis_client,
                config.queue_consumer_group,
                max_len=config.queue_max_len,
                claim_idle_ms=config.queue_claim_idle_ms,
            )

        if backend == QueueBackend.MEMORY:
            logger.info("In-memory queue initialized")
            return InMemoryQueue()

        raise ValueError(f"Unknown queue backend: {backend}")
