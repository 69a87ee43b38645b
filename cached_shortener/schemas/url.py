import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Codes accepted on the redirect path
SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,12}$")


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire (originalUrl, shortCode, ...)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ShortenRequest(CamelModel):
    # Optional so a missing value reaches the engine and gets its 400 message
    original_url: Optional[str] = Field(None, description="The original URL to be shortened")


class ShortURLPayload(CamelModel):
    """The mapping returned by shorten; also the value cached under original:<url>"""
    short_url: str
    original_url: str
    short_code: str


class ShortenResponse(ShortURLPayload):
    message: str


class RecentURL(CamelModel):
    original_url: str
    short_code: str
    clicks: int
    created_at: datetime


class AnalyticsSummary(CamelModel):
    """Summary cached under the analytics key (without the response message)"""
    total_urls: int
    total_clicks: int
    recent_urls: List[RecentURL]


class URLStats(CamelModel):
    short_code: str
    original_url: str
    clicks: int
    created_at: datetime
    last_clicked_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    error: str
    code: str
