"""Redis connection lifespan management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.infra.redis import start_redis, stop_redis

from .registry import lifespan_registry

if TYPE_CHECKING:
    from notification_service.core.settings import RedisSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="redis",
    startup_order=15,
    requires=["core"],
)
async def startup_redis(redis_settings: RedisSettings, **kwargs: object) -> None:
    """Connect to Redis.

    Without Redis the service still serves its API, but neither ingests nor
    publishes events, unless ``startup_require_redis`` makes this fatal.
    """
    if not redis_settings.is_configured:
        logger.warning("Redis not configured, stream ingestion disabled")
        return

    try:
        await start_redis()
    except Exception as e:
        if redis_settings.startup_require_redis:
            logger.exception(
                "Redis required but unavailable, failing startup",
                extra={"error": str(e), "startup_require_redis": True},
            )
            raise
        logger.warning(
            "Redis unavailable, continuing without stream ingestion",
            extra={"error": str(e), "startup_require_redis": False},
        )


@lifespan_registry.register(name="redis")
async def shutdown_redis(**kwargs: object) -> None:
    await stop_redis()
