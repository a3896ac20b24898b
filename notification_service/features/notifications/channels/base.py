"""Channel sender contract.

A sender turns one delivery record into one transport attempt and reports the
outcome as a value. Senders never raise for transport failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from notification_service.features.notifications.models import Notification, NotificationChannel


@dataclass(frozen=True, slots=True)
class DeliveryRequest:
    """What a sender needs from a delivery record, detached from the ORM session."""

    notification_id: int
    recipient_id: int
    recipient_email: str | None
    notification_type: str
    subject: str
    content: str

    @classmethod
    def from_record(cls, record: Notification) -> DeliveryRequest:
        return cls(
            notification_id=record.id,
            recipient_id=record.recipient_id,
            recipient_email=record.recipient_email,
            notification_type=record.type,
            subject=record.subject or "",
            content=record.content,
        )


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of one send attempt.

    A failure with ``retryable=False`` is terminal: the record is marked FAILED
    at once instead of waiting for the retry ceiling.
    """

    success: bool
    error: str | None = None
    retryable: bool = True

    @classmethod
    def ok(cls) -> DeliveryResult:
        return cls(success=True)

    @classmethod
    def failed(cls, error: str, *, retryable: bool = True) -> DeliveryResult:
        return cls(success=False, error=error, retryable=retryable)


@runtime_checkable
class ChannelSender(Protocol):
    """One delivery channel."""

    @property
    def channel(self) -> NotificationChannel: ...

    async def send(self, request: DeliveryRequest) -> DeliveryResult: ...
