"""Event-driven notification delivery.

Architecture:
    - Events: typed inbound stream events and outbound delivery-outcome events
    - Handlers: fan-out of each inbound event kind to recipients and channels
    - Service: rendering, preference filtering, delivery records and retries
    - Channels: pluggable senders for EMAIL, SSE and PUSH
    - Templates: placeholder substitution with a TTL cache and default seeds
    - Dispatch: bounded-concurrency runner with per-record locking

Example:
    ```python
    service = get_notification_service()
    await service.process_notification(
        "user.registered",
        recipient_id=42,
        recipient_email="john@example.com",
        variables={"firstName": "John", "username": "jdoe"},
        channels=["EMAIL"],
    )
    ```
"""

from __future__ import annotations

from notification_service.features.notifications.models import (
    EmailFrequency,
    Notification,
    NotificationChannel,
    NotificationPreference,
    NotificationStatus,
    NotificationTemplate,
)

__all__ = [
    "EmailFrequency",
    "Notification",
    "NotificationChannel",
    "NotificationPreference",
    "NotificationStatus",
    "NotificationTemplate",
]
