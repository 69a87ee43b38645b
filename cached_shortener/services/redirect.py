"""
Redirect resolver: short code -> original URL, recording one click per resolution.

Cache hit (fast path): the click is published to the click queue and the
URL is returned right away; the click worker applies the increment later.
There is no re-check that the record still exists. A crash between the
return and the worker applying the click loses that click.

Cache miss: the store is read, the click is applied synchronously, and the
short:<code> entry is populated for the next resolution.
"""

import asyncio
import logging
from typing import Optional

from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.errors import StorageUnavailable
from cached_shortener.queue.models import ClickEvent
from cached_shortener.queue.strategies import QueueStrategy
from cached_shortener.storage.strategies import RecordStore

logger = logging.getLogger(__name__)


class RedirectResolver:

    def __init__(
        self,
        store: RecordStore,
        cache: URLCachePolicy,
        click_queue: QueueStrategy,
        queue_name: str = "url_clicks",
        publish_timeout: float = 0.5,
    ):
        self.store = store
        self.cache = cache
        self.click_queue = click_queue
        self.queue_name = queue_name
        self.publish_timeout = publish_timeout

    async def resolve(self, short_code: str) -> Optional[str]:
        """
        Return the original URL for short_code, or None if it is unknown.

        Raises:
            StorageUnavailable: the store failed while looking the code up
        """
        cached_url = await self.cache.get_short(short_code)
        if cached_url is not None:
            await self._submit_click(short_code)
            await self.cache.invalidate_analytics()
            return cached_url

        try:
            url = await self.store.get_by_short_code(short_code)
        except StorageUnavailable as e:
            logger.error("Error resolving %s: %s", short_code, e)
            raise StorageUnavailable("Failed to resolve short URL") from e

        if url is None:
            return None

        try:
            await self.store.record_click(short_code)
        except StorageUnavailable:
            # The URL is already known; a lost click must not fail the redirect
            logger.exception("Failed to record click for %s", short_code)

        await self.cache.set_short(short_code, url.original_url)
        await self.cache.invalidate_analytics()
        return url.original_url

    async def _submit_click(self, short_code: str) -> None:
        """Hand the increment to the click worker; never awaits the increment itself."""
        try:
            published = await asyncio.wait_for(
                self.click_queue.publish(self.queue_name, ClickEvent(short_code=short_code)),
                timeout=self.publish_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Dropped click for %s: queue timed out after %.2fs", short_code, self.publish_timeout)
            return
        if not published:
            logger.warning("Dropped click for %s: queue unavailable", short_code)
