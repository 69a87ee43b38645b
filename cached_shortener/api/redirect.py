from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from cached_shortener.dependencies import get_redirect_resolver
from cached_shortener.errors import NotFound
from cached_shortener.schemas.url import SHORT_CODE_PATTERN, ErrorResponse
from cached_shortener.services.redirect import RedirectResolver

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}", responses={404: {"model": ErrorResponse}})
async def redirect_to_original_url(
    short_code: str,
    resolver: RedirectResolver = Depends(get_redirect_resolver)
):
    """
    Redirect to the original URL.

    Cache hit: the click is queued for the click worker and the redirect is
    returned immediately. Cache miss: the click is recorded before redirecting.
    """
    if not SHORT_CODE_PATTERN.match(short_code):
        raise NotFound("Short URL not found")

    original_url = await resolver.resolve(short_code)
    if original_url is None:
        raise NotFound("Short URL not found")

    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
