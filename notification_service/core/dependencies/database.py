"""Database session dependency for route handlers.

Route handlers use ``get_db_session`` through ``Depends``; background work
(ingestion, dispatch, retry sweep) opens sessions from the session factory
directly.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Yield a session that is closed when the request completes."""
    async with get_async_session() as session:
        yield session
