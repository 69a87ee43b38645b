"""
Data models for queue messages.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClickEvent(BaseModel):
    """
    A click on a short URL whose increment has not been applied yet.

    Published by the redirect resolver on the cache-hit path; the click
    worker applies it to the record store.
    """

    short_code: str = Field(..., description="The short code that was resolved")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the click happened",
    )

    # Set by the queue on consume, used for acknowledgment
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "short_code": "aB3xY9kQ",
                "timestamp": "2025-10-29T10:30:00+00:00",
            }
        }
    )
