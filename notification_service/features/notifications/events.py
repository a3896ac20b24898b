"""Inbound stream events and outbound delivery-outcome events.

Field names on the wire are camelCase; models use snake_case with camelCase
aliases and accept either.
"""

from __future__ import annotations

from datetime import UTC, datetime
import json
from typing import Any, ClassVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from notification_service.features.notifications.exceptions import EventDecodeError

# =============================================================================
# Inbound
# =============================================================================


class InboundEvent(BaseModel):
    """Base for events read from the upstream streams."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    event_type: ClassVar[str]

    event_id: str | None = None
    timestamp: datetime | None = None


class UserRegisteredEvent(InboundEvent):
    event_type: ClassVar[str] = "user.registered"

    user_id: int
    username: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class SessionCompletedEvent(InboundEvent):
    event_type: ClassVar[str] = "session.completed"

    session_id: str
    user_id: int
    email: str | None = None
    username: str | None = None
    assessment_id: str | None = None
    assessment_name: str | None = None
    completion_time: str | None = None
    score: str | None = None
    status: str | None = None


class AssignedUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True)

    user_id: int
    username: str | None = None
    email: str | None = None


def _json_list(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            return json.loads(text)
        # Comma-separated ids
        return [part.strip() for part in text.split(",") if part.strip()]
    return value


class AssessmentPublishedEvent(InboundEvent):
    event_type: ClassVar[str] = "assessment.published"

    assessment_id: str | None = None
    assessment_name: str | None = None
    duration: str | None = None
    due_date: str | None = None
    assigned_users: list[AssignedUser] = Field(default_factory=list)

    @field_validator("assigned_users", mode="before")
    @classmethod
    def _parse_users(cls, value: Any) -> Any:
        return _json_list(value)


class ProctoringViolationEvent(InboundEvent):
    event_type: ClassVar[str] = "proctoring.violation"

    session_id: str | None = None
    user_id: int | None = None
    username: str | None = None
    violation_type: str | None = None
    severity: str | None = None
    proctor_ids: list[int] = Field(default_factory=list)

    @field_validator("proctor_ids", mode="before")
    @classmethod
    def _parse_ids(cls, value: Any) -> Any:
        return _json_list(value)


INBOUND_EVENT_TYPES: dict[str, type[InboundEvent]] = {
    model.event_type: model
    for model in (
        UserRegisteredEvent,
        SessionCompletedEvent,
        AssessmentPublishedEvent,
        ProctoringViolationEvent,
    )
}


def classify(stream_kind: str, fields: dict[str, str]) -> type[InboundEvent]:
    """Pick the event model for a decoded entry.

    An explicit ``eventType`` field wins; otherwise the stream and the fields
    present decide.

    Raises:
        EventDecodeError: If the entry matches no known event.
    """
    explicit = fields.get("eventType")
    if explicit:
        model = INBOUND_EVENT_TYPES.get(explicit)
        if model is None:
            raise EventDecodeError(f"Unknown event type: {explicit}")
        return model

    match stream_kind:
        case "user":
            return UserRegisteredEvent
        case "proctoring":
            return ProctoringViolationEvent
        case "assessment" if "sessionId" in fields:
            return SessionCompletedEvent
        case "assessment" if "assignedUsers" in fields:
            return AssessmentPublishedEvent
    raise EventDecodeError(f"Unrecognized {stream_kind} event with fields {sorted(fields)}")


def parse_inbound_event(stream_kind: str, fields: dict[str, str]) -> InboundEvent:
    """Decode a cleaned field map into a typed event.

    Raises:
        EventDecodeError: If the entry is unknown or fails validation.
    """
    model = classify(stream_kind, fields)
    try:
        return model.model_validate(fields)
    except (ValidationError, ValueError) as exc:
        msg = f"Invalid {model.event_type} payload: {exc}"
        raise EventDecodeError(msg) from exc


# =============================================================================
# Outbound
# =============================================================================


class OutboundEvent(BaseModel):
    """Base for events appended to the notification-events stream."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_type: ClassVar[str]

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> dict[str, Any]:
        """camelCase, JSON-compatible field map."""
        return self.model_dump(mode="json", by_alias=True)


class NotificationSentEvent(OutboundEvent):
    event_type: ClassVar[str] = "notification.sent"

    notification_id: int
    recipient_id: int
    channel: str
    type: str
    status: str = "sent"
    delivery_time: str


class NotificationFailedEvent(OutboundEvent):
    event_type: ClassVar[str] = "notification.failed"

    notification_id: int
    recipient_id: int
    channel: str
    error_message: str | None
    retry_count: int
    will_retry: bool


class BulkNotificationCompletedEvent(OutboundEvent):
    event_type: ClassVar[str] = "bulk.completed"

    batch_id: str
    total_recipients: int
    successful_sent: int
    failed_sent: int
    notification_type: str
