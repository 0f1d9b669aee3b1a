"""
Database connection management.

Provides async database engine and session factory.
Supports both SQLite (dev) and PostgreSQL (production).
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import get_settings
from .models import Base

logger = structlog.get_logger()

# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_db_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Get or create the database engine.

    ``database_url`` only takes effect when the engine is first created;
    it defaults to the configured URL.
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        url = database_url or settings.database_url

        # Determine if SQLite or PostgreSQL
        is_sqlite = url.startswith("sqlite")

        _engine = create_async_engine(
            url,
            echo=settings.debug,
            # SQLite needs special handling for async
            connect_args={"check_same_thread": False} if is_sqlite else {},
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        engine = get_db_engine()
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    return _session_factory


@asynccontextmanager
async def get_db_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for a database session that is one transaction.

    Usage:
        async with get_db_session_context() as session:
            ...
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(database_url: Optional[str] = None) -> None:
    """
    Initialize the database by creating all tables.

    Call this on application startup.
    """
    engine = get_db_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database initialized", url=engine.url.render_as_string(hide_password=True))


async def close_db() -> None:
    """
    Close the database connection.

    Call this on application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
