"""Delivery orchestrator lifespan management.

Builds the outbound publisher, the dispatch runner and the notification
service. Shutdown drains in-flight sends without cancelling them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.channels import ChannelRegistry
from notification_service.features.notifications.dispatch import DispatchRunner
from notification_service.features.notifications.service import (
    NotificationService,
    get_notification_service,
    set_notification_service,
)
from notification_service.infra.database import get_session_factory
from notification_service.infra.email import reset_email_provider
from notification_service.infra.redis import get_redis_client
from notification_service.infra.streams import StreamPublisher

from .registry import lifespan_registry

if TYPE_CHECKING:
    from notification_service.core.settings import NotificationSettings, StreamSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="orchestrator",
    startup_order=30,
    requires=["database", "redis", "realtime"],
)
async def startup_orchestrator(
    notification_settings: NotificationSettings,
    stream_settings: StreamSettings,
    **kwargs: object,
) -> None:
    redis = get_redis_client()
    publisher = None
    if redis is not None:
        publisher = StreamPublisher(
            redis.client,
            stream_settings.notification_events,
            maxlen=stream_settings.publish_maxlen,
        )
    else:
        logger.warning("Redis unavailable, outbound events will not be published")

    service = NotificationService(
        session_factory=get_session_factory(),
        channels=ChannelRegistry.default(),
        dispatcher=DispatchRunner(notification_settings.dispatch_concurrency),
        publisher=publisher,
        settings=notification_settings,
    )
    set_notification_service(service)
    logger.info(
        "Notification orchestrator started",
        extra={
            "max_retry_attempts": notification_settings.max_retry_attempts,
            "dispatch_concurrency": notification_settings.dispatch_concurrency,
            "publishing": publisher is not None,
        },
    )


@lifespan_registry.register(name="orchestrator")
async def shutdown_orchestrator(**kwargs: object) -> None:
    """Wait for in-flight sends, then release the service and the email provider."""
    service = get_notification_service()
    still_running = await service.shutdown()
    logger.info("Notification orchestrator stopped", extra={"abandoned_sends": still_running})
    set_notification_service(None)
    reset_email_provider()
