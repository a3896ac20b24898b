"""Placeholder for mobile push; every attempt fails terminally."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.exceptions import ChannelNotImplementedError
from notification_service.features.notifications.models import NotificationChannel

from .base import DeliveryResult

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import DeliveryRequest

logger = logging.getLogger(__name__)


class FuturePushChannelSender:
    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.PUSH

    async def send(self, request: DeliveryRequest) -> DeliveryResult:
        error = ChannelNotImplementedError(self.channel)
        logger.warning(str(error), extra={"notification_id": request.notification_id})
        return DeliveryResult.failed(str(error), retryable=False)
