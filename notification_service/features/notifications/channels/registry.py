"""Lookup of channel senders by channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.features.notifications.models import NotificationChannel

from .email import EmailChannelSender
from .push import FuturePushChannelSender
from .realtime import RealtimeChannelSender

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .base import ChannelSender


class ChannelRegistry:
    """Maps each channel to the sender that handles it.

    Example:
        channels = ChannelRegistry.default()
        result = await channels.get("EMAIL").send(request)
    """

    def __init__(self, senders: Iterable[ChannelSender] = ()) -> None:
        self._senders: dict[NotificationChannel, ChannelSender] = {}
        for sender in senders:
            self.register(sender)

    @classmethod
    def default(cls) -> ChannelRegistry:
        return cls([EmailChannelSender(), RealtimeChannelSender(), FuturePushChannelSender()])

    def register(self, sender: ChannelSender) -> None:
        self._senders[sender.channel] = sender

    def get(self, channel: str) -> ChannelSender:
        """Sender for ``channel``.

        Raises:
            KeyError: If no sender is registered for the channel.
        """
        try:
            return self._senders[NotificationChannel(channel)]
        except ValueError:
            raise KeyError(channel) from None

    def __contains__(self, channel: object) -> bool:
        return channel in self._senders
