"""
Durable record store for URL records, click counts and click history.
"""

from .strategies import RecordStore, SQLRecordStore

__all__ = [
    "RecordStore",
    "SQLRecordStore",
]
