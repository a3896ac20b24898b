"""Database engine and session management.

The engine is created lazily from ``PostgresSettings`` so tests can point the
service at a SQLite file before anything connects.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from notification_service.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from notification_service.core.settings import PostgresSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine_from_settings(db_settings: PostgresSettings) -> AsyncEngine:
    """Build an async engine (psycopg3 in production, aiosqlite in tests)."""
    return create_async_engine(db_settings.url, **db_settings.sqlalchemy_engine_kwargs())


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine, _session_factory

    if _engine is None:
        _engine = create_engine_from_settings(get_db_settings())
        _session_factory = create_session_factory(_engine)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory."""
    get_engine()
    assert _session_factory is not None
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Context manager yielding a session; rolls back on error.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Notification))
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_database(*, create_schema: bool = False) -> None:
    """Verify connectivity and optionally create tables.

    Args:
        create_schema: Run ``metadata.create_all`` (development and tests only).

    Raises:
        ConnectionError: If the database cannot be reached.
    """
    engine = get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.exception("Database connection failed")
        raise ConnectionError(f"Database unavailable: {exc}") from exc

    if create_schema:
        from notification_service.core.database import Base
        from notification_service.features.notifications import models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    logger.info("Database connection established", extra={"url": engine.url.render_as_string()})


async def close_database() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


async def check_database_health() -> bool:
    """Run ``SELECT 1``; False when the database is unreachable."""
    if _engine is None:
        return False
    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True
