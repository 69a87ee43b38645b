"""
Database models for URL shortener.

Click history lives in its own append-only table; the clicks column on URL
is the aggregate kept in step with it.
"""

from .url import URL, ClickHistory

__all__ = ["URL", "ClickHistory"]
