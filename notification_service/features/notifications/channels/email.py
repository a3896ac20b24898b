"""Email channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from notification_service.features.notifications.models import NotificationChannel
from notification_service.infra.email import EmailMessage, get_email_provider

from .base import DeliveryResult

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import DeliveryRequest
    from notification_service.infra.email import BaseEmailProvider

logger = logging.getLogger(__name__)

MISSING_EMAIL = "Recipient email is null"
SEND_FAILED = "Failed to send email"


class EmailChannelSender:
    """Sends the rendered subject and HTML body to the recipient's address."""

    def __init__(self, provider: BaseEmailProvider | None = None) -> None:
        self._provider = provider

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.EMAIL

    @property
    def provider(self) -> BaseEmailProvider:
        if self._provider is None:
            self._provider = get_email_provider()
        return self._provider

    async def send(self, request: DeliveryRequest) -> DeliveryResult:
        if not request.recipient_email:
            logger.warning(
                "Cannot send email notification: recipient email is missing",
                extra={"notification_id": request.notification_id},
            )
            return DeliveryResult.failed(MISSING_EMAIL)

        try:
            message = EmailMessage(
                to=[request.recipient_email],
                subject=request.subject,
                body_html=request.content,
                headers={"X-Notification-Id": str(request.notification_id)},
            )
        except ValidationError:
            logger.warning(
                "Invalid recipient email address",
                extra={"notification_id": request.notification_id},
            )
            return DeliveryResult.failed(f"Invalid recipient email: {request.recipient_email}")

        result = await self.provider.send(message)
        if result.success:
            return DeliveryResult.ok()
        logger.info(
            "Email transport rejected notification",
            extra={"notification_id": request.notification_id, "error": result.error},
        )
        return DeliveryResult.failed(SEND_FAILED)
