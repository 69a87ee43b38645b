"""
Queue strategies using Strategy Pattern.
Allows switching between different queue backends (Redis Streams, In-Memory).

The click queue carries the fire-and-forget increments of the cache-hit
redirect path. Publishing is cheap and never applies the increment itself.
"""

import asyncio
import logging
import socket
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError, ResponseError

from .models import ClickEvent

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    This is the Strategy Pattern interface - allows multiple queue implementations
    without changing the resolver/worker code.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        """
        Publish a message to the queue.

        Returns:
            True if successful, False otherwise (never raises)
        """
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Consume messages from the queue.

        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of messages to retrieve
            block_time: Time to wait for messages (milliseconds)

        Returns:
            List of ClickEvent messages
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Acknowledge messages (mark as processed)"""
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """Get the number of messages waiting in the queue"""
        pass

    async def close(self) -> None:
        """Release backend connections"""
        return None


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for message queue.

    How it works:
    1. Producer publishes messages using XADD (stream capped at max_len)
    2. Consumer reads messages using XREADGROUP
    3. Consumer acknowledges messages using XACK, then XDELs them
    4. Unacknowledged messages stay pending and are read again: first the
       consumer's own pending entries, then (with claim_idle_ms) entries
       left idle by other consumers, then new entries
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        consumer_group: str = "click_workers",
        max_len: Optional[int] = 100_000,
        claim_idle_ms: Optional[int] = None,
    ):
        """
        Args:
            redis_client: async Redis client created with decode_responses=True
            consumer_group: Name of consumer group for workers
            max_len: Approximate cap on stream length (None for no cap)
            claim_idle_ms: Reclaim entries pending this long on other consumers
                (None disables reclaiming)
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.max_len = max_len
        self.claim_idle_ms = claim_idle_ms
        self.consumer_name = f"worker-{socket.gethostname()}-{id(self)}"
        self._initialized_streams = set()

    async def _ensure_stream_exists(self, queue_name: str):
        """Create the stream and consumer group if they don't exist."""
        if queue_name in self._initialized_streams:
            return

        try:
            await self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id="0",
                mkstream=True
            )
            logger.info("Created Redis stream %s", queue_name)
        except ResponseError as e:
            # Group might already exist, that's OK
            if "BUSYGROUP" not in str(e):
                raise

        self._initialized_streams.add(queue_name)

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        try:
            await self._ensure_stream_exists(queue_name)
            await self.redis.xadd(
                queue_name,
                {"data": message.model_dump_json()},
                maxlen=self.max_len,
                approximate=True,
            )
            return True
        except (RedisError, OSError) as e:
            logger.error("Redis publish error: %s", e)
            return False

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        try:
            await self._ensure_stream_exists(queue_name)

            # '0' means "already delivered to this consumer but never acked"
            entries = await self._read(queue_name, "0", batch_size, block=None)
            if not entries and self.claim_idle_ms is not None:
                entries = await self._claim_idle(queue_name, batch_size)
            if not entries:
                # '>' means "messages never delivered to other consumers"
                entries = await self._read(
                    queue_name, ">", batch_size,
                    block=block_time or None  # BLOCK 0 would wait forever
                )
        except (RedisError, OSError) as e:
            logger.error("Redis consume error: %s", e)
            return []

        events = []
        for message_id, message_data in entries:
            try:
                event = ClickEvent.model_validate_json(message_data["data"])
            except (KeyError, TypeError, ValidationError) as e:
                logger.warning("Dropping unparseable message %s: %s", message_id, e)
                await self.ack(queue_name, [message_id])
                continue
            event.message_id = message_id
            events.append(event)

        return events

    async def _read(self, queue_name: str, start: str, count: int, block: Optional[int]) -> List[Tuple[str, dict]]:
        streams = await self.redis.xreadgroup(
            groupname=self.consumer_group,
            consumername=self.consumer_name,
            streams={queue_name: start},
            count=count,
            block=block,
        )
        return [entry for _stream_name, entries in streams or [] for entry in entries]

    async def _claim_idle(self, queue_name: str, count: int) -> List[Tuple[str, dict]]:
        """Take over entries a dead or stuck consumer left pending."""
        result = await self.redis.xautoclaim(
            queue_name,
            self.consumer_group,
            self.consumer_name,
            min_idle_time=self.claim_idle_ms,
            start_id="0-0",
            count=count,
        )
        claimed = [entry for entry in (result[1] if result else []) if entry[0]]
        if claimed:
            logger.info("Reclaimed %d idle click events from %s", len(claimed), queue_name)
        return claimed

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        if not message_ids:
            return True
        try:
            # One consumer group reads the stream, so acked entries can go
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.xack(queue_name, self.consumer_group, *message_ids)
                pipe.xdel(queue_name, *message_ids)
                await pipe.execute()
            return True
        except (RedisError, OSError) as e:
            logger.error("Redis ack error: %s", e)
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        """Entries not yet acknowledged (pending or undelivered)"""
        try:
            return await self.redis.xlen(queue_name)
        except (RedisError, OSError):
            return 0

    async def close(self) -> None:
        await self.redis.aclose()


class InMemoryQueue(QueueStrategy):
    """
    In-memory queue implementation using asyncio queues.

    Not persistent and not shared between processes: clicks still queued
    when the process dies are lost. Used in development/testing and for
    single-process deployments with the in-process worker.
    """

    def __init__(self):
        self._queues: Dict[str, asyncio.Queue] = {}

    def _get_queue(self, queue_name: str) -> asyncio.Queue:
        if queue_name not in self._queues:
            self._queues[queue_name] = asyncio.Queue()
        return self._queues[queue_name]

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        self._get_queue(queue_name).put_nowait(message)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """Wait up to block_time for the first message, then take what is ready."""
        queue = self._get_queue(queue_name)
        messages = []

        if queue.empty() and block_time > 0:
            try:
                messages.append(await asyncio.wait_for(queue.get(), timeout=block_time / 1000))
            except asyncio.TimeoutError:
                return []

        while len(messages) < batch_size and not queue.empty():
            messages.append(queue.get_nowait())

        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        # Messages are removed on consume
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return self._get_queue(queue_name).qsize()
