"""Stream ingestion and retry scheduling lifespan management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.handlers import NotificationEventHandler
from notification_service.features.notifications.service import get_notification_service
from notification_service.infra.redis import get_redis_client
from notification_service.infra.streams import StreamConsumer
from notification_service.tasks.scheduler import start_scheduler, stop_scheduler

from .registry import lifespan_registry

if TYPE_CHECKING:
    from notification_service.core.settings import NotificationSettings, StreamSettings

logger = logging.getLogger(__name__)

_consumer: StreamConsumer | None = None


def get_stream_consumer() -> StreamConsumer | None:
    return _consumer


@lifespan_registry.register(
    name="ingestion",
    startup_order=40,
    requires=["orchestrator"],
)
async def startup_ingestion(
    stream_settings: StreamSettings,
    notification_settings: NotificationSettings,
    **kwargs: object,
) -> None:
    """Create the consumer groups and start the poll, reclaim and retry jobs."""
    global _consumer

    service = get_notification_service()
    redis = get_redis_client()
    if redis is None or not stream_settings.enabled:
        logger.warning("Stream ingestion disabled", extra={"redis": redis is not None})
    else:
        _consumer = StreamConsumer(redis.client, stream_settings, NotificationEventHandler(service))
        await _consumer.ensure_groups()
        logger.info(
            "Stream consumer ready",
            extra={
                "streams": list(stream_settings.inbound_streams),
                "group": _consumer.group,
                "consumer": _consumer.consumer_name,
            },
        )

    await start_scheduler(
        consumer=_consumer,
        service=service,
        stream_settings=stream_settings,
        notification_settings=notification_settings,
    )


@lifespan_registry.register(name="ingestion")
async def shutdown_ingestion(**kwargs: object) -> None:
    """Stop ticking; an in-progress poll finishes on its own."""
    global _consumer

    if _consumer is not None:
        _consumer.stop()
    await stop_scheduler()
    _consumer = None
