"""
Durable record store.

The store is the source of truth for URL records, click counts and click
history. Services only see the RecordStore interface; SQLRecordStore backs
it with async SQLAlchemy and opens one session per operation, so the same
instance serves request handlers and the background click worker.

Uniqueness of original URLs and short codes is enforced by database
constraints. Click increments are a single UPDATE ... SET clicks = clicks + 1
so concurrent increments are never lost.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cached_shortener.errors import DuplicateRecord, StorageUnavailable
from cached_shortener.models.url import URL, ClickHistory, utcnow

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """
    Abstract interface of the durable record store.

    Implementations raise StorageUnavailable when the backend fails and
    DuplicateRecord when a uniqueness constraint rejects an insert.
    """

    @abstractmethod
    async def get_by_original_url(self, original_url: str) -> Optional[URL]:
        pass

    @abstractmethod
    async def get_by_short_code(self, short_code: str) -> Optional[URL]:
        pass

    @abstractmethod
    async def create(self, original_url: str, short_code: str) -> URL:
        """
        Persist a new record with clicks=0, empty history and createdAt=now.

        Raises:
            DuplicateRecord: original_url or short_code already taken
        """
        pass

    @abstractmethod
    async def record_click(self, short_code: str, at: Optional[datetime] = None) -> bool:
        """
        Atomically increment clicks and append one history entry.

        Returns:
            False if no record has this short code
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def recent(self, limit: int = 10) -> List[URL]:
        """Most recently created records, newest first"""
        pass

    @abstractmethod
    async def total_clicks(self) -> int:
        """Sum of clicks across all records"""
        pass

    @abstractmethod
    async def click_history(self, short_code: str) -> List[datetime]:
        """Click timestamps for one record, oldest first"""
        pass


class SQLRecordStore(RecordStore):
    """Record store on async SQLAlchemy (SQLite via aiosqlite, PostgreSQL via asyncpg)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session scope that maps driver failures onto the store's error types"""
        try:
            async with self.session_factory() as session:
                yield session
        except IntegrityError as e:
            raise DuplicateRecord(str(e.orig)) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error("Record store operation failed: %s", e)
            raise StorageUnavailable("Record store unavailable") from e

    async def get_by_original_url(self, original_url: str) -> Optional[URL]:
        async with self._session() as session:
            result = await session.execute(
                select(URL).where(URL.original_url == original_url)
            )
            return result.scalar_one_or_none()

    async def get_by_short_code(self, short_code: str) -> Optional[URL]:
        async with self._session() as session:
            result = await session.execute(
                select(URL).where(URL.short_code == short_code)
            )
            return result.scalar_one_or_none()

    async def create(self, original_url: str, short_code: str) -> URL:
        url = URL(
            original_url=original_url,
            short_code=short_code,
            clicks=0,
            created_at=utcnow(),
        )
        async with self._session() as session:
            session.add(url)
            await session.commit()
        return url

    async def record_click(self, short_code: str, at: Optional[datetime] = None) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(URL)
                .where(URL.short_code == short_code)
                .values(clicks=URL.clicks + 1)
                .returning(URL.id)
                .execution_options(synchronize_session=False)
            )
            url_id = result.scalar_one_or_none()
            if url_id is None:
                await session.rollback()
                return False

            # Same transaction as the increment: clicks == len(history) at every commit
            session.add(ClickHistory(url_id=url_id, timestamp=at or utcnow()))
            await session.commit()
            return True

    async def count(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(URL))
            return result.scalar_one()

    async def recent(self, limit: int = 10) -> List[URL]:
        async with self._session() as session:
            result = await session.execute(
                select(URL)
                .order_by(URL.created_at.desc(), URL.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def total_clicks(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.coalesce(func.sum(URL.clicks), 0)))
            return int(result.scalar_one())

    async def click_history(self, short_code: str) -> List[datetime]:
        async with self._session() as session:
            result = await session.execute(
                select(ClickHistory.timestamp)
                .join(URL, ClickHistory.url_id == URL.id)
                .where(URL.short_code == short_code)
                .order_by(ClickHistory.id)
            )
            return list(result.scalars().all())
