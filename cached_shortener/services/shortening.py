"""
Shortening engine: idempotent creation of short codes.

Lookup order, first match wins:
1. original:<url> in cache           -> CACHE_HIT (store untouched)
2. record for the URL in the store   -> DB_HIT, cache both relations
3. insert a new record               -> CREATED, cache both relations, drop analytics

Two creations racing for the same URL are settled by the store's unique
constraint on original_url: the loser looks the winner up and returns it as
a DB_HIT. A short code collision with a different URL is retried with a
fresh code, up to max_retries.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.errors import DuplicateRecord, InvalidInput, StorageUnavailable
from cached_shortener.models.url import URL
from cached_shortener.schemas.url import ShortURLPayload
from cached_shortener.services.short_code_strategies import ShortCodeStrategy
from cached_shortener.storage.strategies import RecordStore

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyUrl)


class ShortenOutcome(Enum):
    CREATED = "created"
    DB_HIT = "db_hit"
    CACHE_HIT = "cache_hit"


_MESSAGES = {
    ShortenOutcome.CREATED: "New short URL created",
    ShortenOutcome.DB_HIT: "URL already exists",
    ShortenOutcome.CACHE_HIT: "URL already exists (from cache)",
}


@dataclass(frozen=True)
class ShortenResult:
    outcome: ShortenOutcome
    payload: ShortURLPayload

    @property
    def status_code(self) -> int:
        return 201 if self.outcome is ShortenOutcome.CREATED else 200

    @property
    def message(self) -> str:
        return _MESSAGES[self.outcome]

    @property
    def short_code(self) -> str:
        return self.payload.short_code


def validate_url(original_url: Optional[str]) -> str:
    """Return the URL unchanged if it is a well-formed absolute URL."""
    if not original_url:
        raise InvalidInput("Original URL is required")
    try:
        _url_adapter.validate_python(original_url)
    except ValidationError:
        raise InvalidInput("Invalid URL format")
    return original_url


class ShorteningEngine:
    """Creates or retrieves the short code for an original URL."""

    def __init__(
        self,
        store: RecordStore,
        cache: URLCachePolicy,
        code_strategy: ShortCodeStrategy,
        base_url: str,
        max_retries: int = 5,
    ):
        self.store = store
        self.cache = cache
        self.code_strategy = code_strategy
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries

    def _payload(self, url: URL) -> ShortURLPayload:
        return ShortURLPayload(
            short_url=f"{self.base_url}/{url.short_code}",
            original_url=url.original_url,
            short_code=url.short_code,
        )

    async def shorten(self, original_url: Optional[str]) -> ShortenResult:
        """
        Return the short code for original_url, creating it if needed.

        Raises:
            InvalidInput: missing or malformed URL
            StorageUnavailable: the record store failed (no fallback)
        """
        original_url = validate_url(original_url)
        try:
            return await self._shorten(original_url)
        except StorageUnavailable as e:
            logger.error("Error in shorten for %s: %s", original_url, e)
            raise StorageUnavailable("Failed to create short URL") from e

    async def _shorten(self, original_url: str) -> ShortenResult:
        cached = await self.cache.get_original(original_url)
        if cached is not None:
            return ShortenResult(ShortenOutcome.CACHE_HIT, cached)

        existing = await self.store.get_by_original_url(original_url)
        if existing is not None:
            return await self._existing(existing)

        for attempt in range(1, self.max_retries + 1):
            short_code = self.code_strategy.generate()
            try:
                url = await self.store.create(original_url, short_code)
            except DuplicateRecord:
                winner = await self.store.get_by_original_url(original_url)
                if winner is not None:
                    logger.info("Concurrent creation for %s resolved to %s", original_url, winner.short_code)
                    return await self._existing(winner)
                logger.warning("Short code collision on %s (attempt %d/%d)", short_code, attempt, self.max_retries)
                continue

            payload = self._payload(url)
            await self.cache.remember(payload)
            await self.cache.invalidate_analytics()
            logger.info("Created short code %s for %s", url.short_code, original_url)
            return ShortenResult(ShortenOutcome.CREATED, payload)

        raise StorageUnavailable(
            f"Could not generate unique short code after {self.max_retries} attempts"
        )

    async def _existing(self, url: URL) -> ShortenResult:
        payload = self._payload(url)
        await self.cache.remember(payload)
        return ShortenResult(ShortenOutcome.DB_HIT, payload)
