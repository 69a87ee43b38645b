from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cached_shortener.dependencies import get_analytics_aggregator, get_shortening_engine
from cached_shortener.errors import NotFound
from cached_shortener.schemas.url import ErrorResponse, ShortenRequest, ShortenResponse, URLStats
from cached_shortener.services.analytics import AnalyticsAggregator
from cached_shortener.services.shortening import ShorteningEngine

router = APIRouter(tags=["urls"])


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=201,
    responses={200: {"model": ShortenResponse}, 400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_short_url(
    url_data: ShortenRequest,
    engine: ShorteningEngine = Depends(get_shortening_engine)
):
    """Create a short URL, or return the existing one (201 created, 200 existing)"""
    result = await engine.shorten(url_data.original_url)
    body = ShortenResponse(**result.payload.model_dump(), message=result.message)
    return JSONResponse(status_code=result.status_code, content=body.model_dump(by_alias=True))


@router.get("/urls/{short_code}/stats", response_model=URLStats, responses={404: {"model": ErrorResponse}})
async def get_url_stats(
    short_code: str,
    aggregator: AnalyticsAggregator = Depends(get_analytics_aggregator)
):
    """Get click statistics for a short URL"""
    stats = await aggregator.url_stats(short_code)
    if not stats:
        raise NotFound("Short URL not found")
    return stats
