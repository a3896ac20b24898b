"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notification_service.core.database import TimestampedBase


class NotificationChannel(StrEnum):
    """Delivery channels a notification can be routed to."""

    EMAIL = "EMAIL"
    SSE = "SSE"
    PUSH = "PUSH"


class NotificationStatus(StrEnum):
    """Lifecycle of a delivery record.

    PENDING -> SENT on success; PENDING -> FAILED once the retry ceiling is hit.
    DELIVERED is reserved for receipts and never set by the pipeline.
    """

    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class EmailFrequency(StrEnum):
    IMMEDIATE = "IMMEDIATE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class NotificationTemplate(TimestampedBase):
    """Named subject/body pattern pair rendered for each notification.

    Patterns use ``{{ variable }}`` placeholders. ``variables`` documents the
    expected names and their types (e.g. ``{"username": "string"}``).
    """

    __tablename__ = "notification_templates"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        comment="Template identifier (e.g., 'welcome_user')",
    )
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="email",
        comment="Channel family the template was written for",
    )
    subject: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Subject pattern",
    )
    body: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
        comment="Body pattern (HTML)",
    )
    variables: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=True,
        comment="Declared variable names mapped to their types",
    )

    def __repr__(self) -> str:
        return f"<NotificationTemplate(id={self.id}, name={self.name!r})>"


class Notification(TimestampedBase):
    """One delivery attempt record per (recipient, channel, event).

    Indexes:
        - (status, retry_count) for the retry sweep
        - (recipient_id, created_at) for per-user history
    """

    __tablename__ = "notifications"

    recipient_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="User the notification is addressed to",
    )
    recipient_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Email address when known; required for the EMAIL channel",
    )
    type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Originating event type (e.g., 'user.registered')",
    )
    channel: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="EMAIL, SSE or PUSH",
    )
    subject: Mapped[str | None] = mapped_column(String(500), nullable=True)
    content: Mapped[str] = mapped_column(Text(), nullable=False, comment="Rendered body")
    template_id: Mapped[int | None] = mapped_column(
        ForeignKey("notification_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=NotificationStatus.PENDING,
        comment="PENDING, SENT, DELIVERED or FAILED",
    )
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text(), nullable=True)
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Failed attempts so far",
    )

    template: Mapped[NotificationTemplate | None] = relationship(lazy="noload")

    __table_args__ = (
        Index("ix_notifications_status_retry", "status", "retry_count"),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, recipient_id={self.recipient_id}, "
            f"channel={self.channel}, status={self.status})>"
        )


class NotificationPreference(TimestampedBase):
    """Per-user channel enablement. No row means every channel is enabled."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[int] = mapped_column(
        Integer,
        unique=True,
        nullable=False,
        comment="Owner of the preferences",
    )
    email_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sse_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_frequency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EmailFrequency.IMMEDIATE,
        comment="IMMEDIATE, DAILY or WEEKLY",
    )
    categories: Mapped[dict[str, bool] | None] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=True,
        comment="Per-category opt-in flags",
    )

    def allows(self, channel: str) -> bool:
        """Whether this preference lets ``channel`` through."""
        match NotificationChannel(channel):
            case NotificationChannel.EMAIL:
                return self.email_enabled
            case NotificationChannel.SSE:
                return self.sse_enabled
            case NotificationChannel.PUSH:
                return self.push_enabled

    def __repr__(self) -> str:
        return f"<NotificationPreference(user_id={self.user_id})>"
