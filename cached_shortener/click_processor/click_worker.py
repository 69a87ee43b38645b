"""
Click Worker

Applies the clicks published by the cache-hit redirect path to the record
store, then invalidates the cached analytics summary.

Architecture:
- Consumes ClickEvents from the click queue in batches
- One atomic increment + history append per event
- Acks only applied events (failed ones stay pending on a Redis stream
  and are read again by the next batch)
- Runs inside the API process (started by main.py) or standalone
"""

import asyncio
import logging
import signal
import sys
from typing import List, Tuple

from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.config import settings
from cached_shortener.errors import StorageUnavailable
from cached_shortener.queue.models import ClickEvent
from cached_shortener.queue.strategies import QueueStrategy
from cached_shortener.storage.strategies import RecordStore

logger = logging.getLogger(__name__)


class ClickWorker:
    """Background applier of fire-and-forget click increments."""

    def __init__(
        self,
        queue: QueueStrategy,
        store: RecordStore,
        cache: URLCachePolicy,
        queue_name: str = "url_clicks",
        batch_size: int = 100,
        block_time: int = 1000,
        retry_delay: float = 1.0,
    ):
        """
        Args:
            queue: Queue strategy for consuming click events
            store: Record store the clicks are applied to
            cache: Cache policy, for analytics invalidation
            queue_name: Name of the click queue
            batch_size: Maximum events consumed per batch
            block_time: Time to wait for events per poll (milliseconds)
            retry_delay: Pause after a batch that could not be applied (seconds)
        """
        self.queue = queue
        self.store = store
        self.cache = cache
        self.queue_name = queue_name
        self.batch_size = batch_size
        self.block_time = block_time
        self.retry_delay = retry_delay
        self.running = False
        self.processed_count = 0

    async def run(self):
        """Process batches until stop() is called."""
        self.running = True
        logger.info("Click worker started (queue=%s, batch size=%d)", self.queue_name, self.batch_size)

        while self.running:
            try:
                consumed, applied = await self._process_batch(self.block_time)
                if consumed and not applied:
                    # Store is failing; pending clicks are retried after a pause
                    await asyncio.sleep(self.retry_delay)
            except asyncio.CancelledError:
                logger.info("Click worker task cancelled")
                raise
            except Exception:
                logger.exception("Error processing click batch")
                await asyncio.sleep(self.retry_delay)

        logger.info("Click worker stopped")

    async def process_batch(self, block_time: int = None) -> int:
        """
        Consume one batch and apply it.

        Returns:
            Number of events consumed
        """
        consumed, _ = await self._process_batch(self.block_time if block_time is None else block_time)
        return consumed

    async def _process_batch(self, block_time: int) -> Tuple[int, int]:
        messages = await self.queue.consume(
            self.queue_name,
            batch_size=self.batch_size,
            block_time=block_time,
        )
        if not messages:
            return 0, 0

        done = await self._apply(messages)

        message_ids = [msg.message_id for msg in done if msg.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)

        if done:
            await self.cache.invalidate_analytics()

        self.processed_count += len(done)
        logger.debug("Applied %d/%d clicks. Total: %d", len(done), len(messages), self.processed_count)
        return len(messages), len(done)

    async def _apply(self, messages: List[ClickEvent]) -> List[ClickEvent]:
        """Apply each click; return the events that can be acknowledged."""
        done = []
        for event in messages:
            try:
                recorded = await self.store.record_click(event.short_code, at=event.timestamp)
            except StorageUnavailable as e:
                # Not acked: stays pending on a Redis stream, lost on the in-memory queue
                logger.error("Failed to apply click for %s: %s", event.short_code, e)
                continue

            if not recorded:
                logger.warning("Click for unknown short code %s dropped", event.short_code)
            done.append(event)
        return done

    async def drain(self) -> int:
        """
        Process until the queue is empty or a batch makes no progress.

        Returns:
            Number of events consumed
        """
        total = 0
        while True:
            consumed, applied = await self._process_batch(0)
            total += consumed
            if not consumed or not applied:
                return total

    def stop(self):
        """Stop the worker after the current batch"""
        self.running = False

    async def shutdown(self, task: asyncio.Task, timeout: float) -> int:
        """
        Stop the worker running in task, let it finish the batch in flight,
        then drain what is still queued.

        The task is cancelled only if the batch takes longer than timeout.

        Returns:
            Number of events consumed by the drain
        """
        self.stop()
        try:
            await asyncio.wait_for(task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Click worker did not finish its batch within %.1fs; cancelled", timeout)
        return await self.drain()


async def main():
    """
    Run the click worker as a standalone process (Redis streams backend).

    Usage:
        python -m cached_shortener.click_processor.click_worker
    """
    from cached_shortener.cache.factory import CacheBackend, CacheFactory
    from cached_shortener.database.connection import (
        close_db,
        create_engine_from_settings,
        create_session_factory,
        init_db,
    )
    from cached_shortener.logging_config import setup_logging
    from cached_shortener.queue.factory import QueueBackend, QueueFactory
    from cached_shortener.storage.strategies import SQLRecordStore

    setup_logging(settings)
    logger.info(
        "Environment: %s, queue backend: %s, cache backend: %s",
        settings.environment, settings.queue_backend, settings.cache_backend,
    )

    engine = create_engine_from_settings(settings)
    await init_db(engine)
    queue = await QueueFactory.create(QueueBackend(settings.queue_backend), settings)
    cache = await CacheFactory.create(CacheBackend(settings.cache_backend), settings)

    worker = ClickWorker(
        queue=queue,
        store=SQLRecordStore(create_session_factory(engine)),
        cache=URLCachePolicy(
            cache,
            url_ttl=settings.url_cache_ttl,
            analytics_ttl=settings.analytics_cache_ttl,
            timeout=settings.cache_timeout,
        ),
        queue_name=settings.queue_name,
        batch_size=settings.queue_batch_size,
        block_time=settings.queue_block_ms,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run()
    finally:
        await queue.close()
        await cache.close()
        await close_db(engine)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception:
        logger.exception("Fatal error in click worker")
        sys.exit(1)
