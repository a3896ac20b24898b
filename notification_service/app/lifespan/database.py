"""Database connection lifespan management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.templates import seed_default_templates
from notification_service.infra.database import close_database, get_async_session, init_database

from .registry import lifespan_registry

if TYPE_CHECKING:
    from notification_service.core.settings import NotificationSettings, PostgresSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="database",
    startup_order=10,
    requires=["core"],
)
async def startup_database(
    db_settings: PostgresSettings,
    notification_settings: NotificationSettings,
    **kwargs: object,
) -> None:
    """Connect, optionally create the schema, and seed the default templates.

    Raises:
        ConnectionError: If the database is configured but unreachable.
    """
    if not db_settings.is_configured:
        logger.warning("Database not configured, delivery records cannot be stored")
        return

    await init_database(create_schema=db_settings.create_schema)

    if notification_settings.seed_templates:
        async with get_async_session() as session:
            inserted = await seed_default_templates(session)
            await session.commit()
        logger.info("Default templates ensured", extra={"inserted": len(inserted)})


@lifespan_registry.register(name="database")
async def shutdown_database(**kwargs: object) -> None:
    await close_database()
