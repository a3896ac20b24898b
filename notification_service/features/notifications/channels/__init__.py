"""Delivery channels."""

from __future__ import annotations

from .base import ChannelSender, DeliveryRequest, DeliveryResult
from .email import EmailChannelSender
from .push import FuturePushChannelSender
from .realtime import RealtimeChannelSender
from .registry import ChannelRegistry

__all__ = [
    "ChannelRegistry",
    "ChannelSender",
    "DeliveryRequest",
    "DeliveryResult",
    "EmailChannelSender",
    "FuturePushChannelSender",
    "RealtimeChannelSender",
]
