from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from cached_shortener.database.connection import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class URL(Base):
    """
    URL record - the authoritative mapping between an original URL and its code.

    Both original_url and short_code carry unique constraints; concurrent
    creations are settled by these, not by client-side locking.
    clicks always equals the number of ClickHistory rows for the record
    (both are written in the same transaction).
    """
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Note: unique=True automatically creates an index
    original_url = Column(Text, unique=True, nullable=False)
    short_code = Column(String(12), unique=True, nullable=False)
    clicks = Column(Integer, nullable=False, default=0)
    # Set in Python so ordering by recency keeps sub-second precision
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


class ClickHistory(Base):
    """One row per recorded click. Append-only."""
    __tablename__ = "click_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url_id = Column(Integer, ForeignKey("urls.id"), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
