"""Pydantic schemas for the notifications API.

Request and response bodies use camelCase on the wire and accept snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notification_service.features.notifications.models import (
    EmailFrequency,
    NotificationChannel,
    NotificationStatus,
)
from notification_service.utils.runtime_dependencies import require_runtime_dependency

if TYPE_CHECKING:
    from notification_service.core.database import SearchResult
    from notification_service.features.notifications.models import Notification

require_runtime_dependency(datetime)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Preferences
# =============================================================================


class PreferenceBase(CamelModel):
    """Shared attributes for preference payloads."""

    email_enabled: bool = True
    push_enabled: bool = True
    sse_enabled: bool = True
    email_frequency: EmailFrequency = EmailFrequency.IMMEDIATE
    categories: dict[str, bool] = Field(default_factory=dict)


class PreferenceRequest(PreferenceBase):
    """Payload for creating or replacing a user's preferences."""


class PreferenceResponse(PreferenceBase):
    """Representation returned from the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    user_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Delivery records
# =============================================================================


class NotificationResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    recipient_id: int
    recipient_email: str | None = None
    type: str
    channel: NotificationChannel
    subject: str | None = None
    content: str
    template_id: int | None = None
    status: NotificationStatus
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    error_message: str | None = None
    retry_count: int
    created_at: datetime | None = None


class NotificationListResponse(CamelModel):
    """One page of a user's delivery history."""

    items: list[NotificationResponse]
    total: int
    limit: int
    offset: int
    has_next: bool

    @classmethod
    def from_result(cls, result: SearchResult[Notification]) -> NotificationListResponse:
        return cls(
            items=[NotificationResponse.model_validate(item) for item in result.items],
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_next=result.has_next,
        )


# =============================================================================
# Bulk
# =============================================================================


class BulkNotificationRequest(CamelModel):
    """Deliver one notification type to many users.

    ``user_specific_data`` values override ``common_data`` per user; an
    ``email`` key supplies the user's address for the EMAIL channel.
    """

    user_ids: list[int] = Field(..., min_length=1, max_length=10_000)
    type: str = Field(..., min_length=1, max_length=100, description="Event type, e.g. 'assessment.published'")
    channels: list[NotificationChannel] = Field(..., min_length=1)
    common_data: dict[str, Any] = Field(default_factory=dict)
    user_specific_data: dict[int, dict[str, Any]] = Field(default_factory=dict)


class BulkNotificationResult(BaseModel):
    total: int
    success: int
    failed: int


__all__ = [
    "BulkNotificationRequest",
    "BulkNotificationResult",
    "NotificationListResponse",
    "NotificationResponse",
    "PreferenceBase",
    "PreferenceRequest",
    "PreferenceResponse",
]
