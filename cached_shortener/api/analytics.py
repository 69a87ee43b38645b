from typing import Any, Dict

from fastapi import APIRouter, Depends

from cached_shortener.dependencies import get_analytics_aggregator
from cached_shortener.schemas.url import ErrorResponse
from cached_shortener.services.analytics import AnalyticsAggregator

router = APIRouter(tags=["analytics"])


@router.get("/analytics", responses={500: {"model": ErrorResponse}})
async def get_analytics(
    aggregator: AnalyticsAggregator = Depends(get_analytics_aggregator)
) -> Dict[str, Any]:
    """
    Totals and the 10 most recent URLs.

    Served from a 60 second cache that every creation or click invalidates.
    """
    return await aggregator.summary()
