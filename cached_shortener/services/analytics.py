"""
Analytics aggregator: totals plus the most recently created URLs.

The summary is cached under the analytics key for analytics_ttl seconds.
Every mutation (creation or click) deletes that key, so a read after the
invalidation recomputes from the store; the TTL bounds staleness otherwise.
"""

import logging
from typing import Any, Dict, Optional

from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.errors import StorageUnavailable
from cached_shortener.schemas.url import AnalyticsSummary, RecentURL, URLStats
from cached_shortener.storage.strategies import RecordStore

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Analytics data fetched successfully"
NO_RECORD_MESSAGE = "No record found"


class AnalyticsAggregator:

    def __init__(self, store: RecordStore, cache: URLCachePolicy, recent_limit: int = 10):
        self.store = store
        self.cache = cache
        self.recent_limit = recent_limit

    async def summary(self) -> Dict[str, Any]:
        """
        Return {totalUrls, totalClicks, recentUrls, message}, or the
        {"message": "No record found"} placeholder when the store is empty.

        Raises:
            StorageUnavailable: the store failed on a cache miss
        """
        cached = await self.cache.get_analytics()
        if cached is not None:
            return _with_message(cached)

        try:
            payload = await self._compute()
        except StorageUnavailable as e:
            logger.error("Error computing analytics: %s", e)
            raise StorageUnavailable("Failed to fetch analytics data") from e

        await self.cache.set_analytics(payload)
        return _with_message(payload)

    async def _compute(self) -> Dict[str, Any]:
        total_urls = await self.store.count()
        if total_urls == 0:
            return {"message": NO_RECORD_MESSAGE}

        recent = await self.store.recent(self.recent_limit)
        # Sum over every record, not only the ones listed
        total_clicks = await self.store.total_clicks()

        summary = AnalyticsSummary(
            total_urls=total_urls,
            total_clicks=total_clicks,
            recent_urls=[
                RecentURL(
                    original_url=url.original_url,
                    short_code=url.short_code,
                    clicks=url.clicks,
                    created_at=url.created_at,
                )
                for url in recent
            ],
        )
        return summary.model_dump(mode="json", by_alias=True)

    async def url_stats(self, short_code: str) -> Optional[URLStats]:
        """Per-URL statistics, read straight from the store (not cached)."""
        try:
            url = await self.store.get_by_short_code(short_code)
            if url is None:
                return None
            history = await self.store.click_history(short_code)
        except StorageUnavailable as e:
            raise StorageUnavailable("Failed to fetch URL statistics") from e

        return URLStats(
            short_code=url.short_code,
            original_url=url.original_url,
            clicks=url.clicks,
            created_at=url.created_at,
            last_clicked_at=history[-1] if history else None,
        )


def _with_message(payload: Dict[str, Any]) -> Dict[str, Any]:
    # The success message is part of the response only, never of the cached value
    if "message" in payload:
        return payload
    return {**payload, "message": SUCCESS_MESSAGE}
