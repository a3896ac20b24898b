"""Application lifespan management.

Startup runs the registered hooks in dependency order:
core -> database, redis, realtime -> orchestrator -> ingestion.
Shutdown runs them in reverse, so ingestion stops ticking before in-flight
sends are drained and push connections are closed last but one.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING, Any

# Import all lifespan modules to register their hooks
from notification_service.app.lifespan import (
    core,
    database,
    ingestion,
    orchestrator,
    realtime,
    redis,
)
from notification_service.app.lifespan.registry import lifespan_registry
from notification_service.core.settings import (
    get_app_settings,
    get_auth_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_notification_settings,
    get_realtime_settings,
    get_redis_settings,
    get_stream_settings,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

# Ensure modules are imported (for side effects - hook registration)
_ = (core, database, ingestion, orchestrator, realtime, redis)

logger = logging.getLogger(__name__)


def load_settings() -> dict[str, Any]:
    """Settings objects passed to every lifecycle hook."""
    return {
        "app_settings": get_app_settings(),
        "auth_settings": get_auth_settings(),
        "db_settings": get_db_settings(),
        "email_settings": get_email_settings(),
        "log_settings": get_logging_settings(),
        "notification_settings": get_notification_settings(),
        "realtime_settings": get_realtime_settings(),
        "redis_settings": get_redis_settings(),
        "stream_settings": get_stream_settings(),
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup hooks, serve, then run shutdown hooks.

    A failed startup still shuts down whatever had already started.
    """
    _ = app

    settings = load_settings()
    app_settings = settings["app_settings"]

    try:
        await lifespan_registry.startup(**settings)
    except Exception:
        await lifespan_registry.shutdown(**settings)
        raise

    logger.info(
        "Application is LIVE and ready to serve requests on http://%s:%s",
        app_settings.host,
        app_settings.port,
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
            "version": app_settings.version,
            "database_enabled": settings["db_settings"].is_configured,
            "redis_enabled": settings["redis_settings"].is_configured,
        },
    )

    yield

    logger.info("Application shutting down", extra={"service": app_settings.service_name})
    await lifespan_registry.shutdown(**settings)
    logger.info("Application shutdown complete")


__all__ = ["lifespan", "load_settings"]
