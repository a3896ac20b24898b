"""Real-time push channel over server-sent events."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.features.notifications.models import NotificationChannel
from notification_service.infra.realtime import get_push_registry

from .base import DeliveryResult

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import DeliveryRequest
    from notification_service.infra.realtime import PushConnectionRegistry

NOT_CONNECTED = "User not connected to SSE"


class RealtimeChannelSender:
    """Unicasts the notification to every open connection of the recipient.

    The frame's event name is the notification type. Succeeds iff at least one
    connection accepted the write; offline users are not queued.
    """

    def __init__(self, registry: PushConnectionRegistry | None = None) -> None:
        self._registry = registry

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.SSE

    async def send(self, request: DeliveryRequest) -> DeliveryResult:
        registry = self._registry or get_push_registry()
        delivered = await registry.send_to_user(
            request.recipient_id,
            request.notification_type,
            {
                "notificationId": request.notification_id,
                "type": request.notification_type,
                "subject": request.subject,
                "content": request.content,
            },
        )
        return DeliveryResult.ok() if delivered else DeliveryResult.failed(NOT_CONNECTED)
