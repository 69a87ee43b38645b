"""
Async SQLAlchemy engine and session factory for the URL record store.

The engine is process-scoped: main.py opens it on startup (creating tables)
and disposes it on shutdown. Nothing here is created at import time.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cached_shortener.config import Settings


class Base(DeclarativeBase):
    pass


def create_engine_from_settings(config: Settings) -> AsyncEngine:
    return create_async_engine(
        config.database_url,
        echo=config.database_echo,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps returned records readable after the session closes
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if they don't exist."""
    # Import models to ensure they're registered with Base
    from cached_shortener import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
