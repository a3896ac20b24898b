"""Redis stream ingestion and publishing settings."""

from __future__ import annotations

import os
import socket
import uuid
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric


def _default_consumer_name() -> str:
    """Unique per-process consumer name so instances never share pending entries."""
    return f"notification-{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:8]}"


class StreamSettings(BaseSettings):
    """Consumer-group ingestion settings.

    Environment variables use STREAM_ prefix.
    Example: STREAM_CONSUMER_GROUP=notification-service-group
    """

    # ──────────────────────────────────────────────────────────────
    # Stream names
    # ──────────────────────────────────────────────────────────────

    user_events: str = Field(default="user-events", description="Inbound user lifecycle stream")
    assessment_events: str = Field(
        default="assessment-events",
        description="Inbound assessment stream (session completion and publication)",
    )
    proctoring_events: str = Field(
        default="proctoring-events",
        description="Inbound proctoring violation stream",
    )
    notification_events: str = Field(
        default="notification-events",
        description="Outbound stream for delivery outcome events",
    )

    # ──────────────────────────────────────────────────────────────
    # Consumer group
    # ──────────────────────────────────────────────────────────────

    enabled: bool = Field(default=True, description="Run the ingestion loop")
    consumer_group: str = Field(
        default="notification-service-group",
        min_length=1,
        description="Consumer group shared by all service instances",
    )
    consumer_name: str = Field(
        default_factory=_default_consumer_name,
        min_length=1,
        description="Consumer name; unique per instance",
    )

    # ──────────────────────────────────────────────────────────────
    # Polling
    # ──────────────────────────────────────────────────────────────

    poll_interval: float = Field(default=1.0, ge=0.05, le=60.0, description="Seconds between polls")
    batch_size: int = Field(default=10, ge=1, le=1000, description="Max messages per stream per poll")
    block_ms: int = Field(
        default=500,
        ge=0,
        le=30_000,
        description="XREADGROUP block timeout in milliseconds (0 = non-blocking); keep below poll_interval",
    )
    base64_payloads: bool = Field(
        default=True,
        description="Payload values are base64 encoded by the producers",
    )

    # ──────────────────────────────────────────────────────────────
    # Pending-entry reclaim
    # ──────────────────────────────────────────────────────────────

    reclaim_enabled: bool = Field(default=True, description="Reclaim stale pending entries")
    reclaim_idle_ms: int = Field(
        default=60_000,
        ge=1000,
        description="Pending entries idle longer than this are claimed by this consumer",
    )
    reclaim_interval: float = Field(default=30.0, ge=1.0, le=3600.0)

    # ──────────────────────────────────────────────────────────────
    # Publishing
    # ──────────────────────────────────────────────────────────────

    publish_maxlen: int | None = Field(
        default=100_000,
        ge=1,
        description="Approximate MAXLEN for the outbound stream (None = unbounded)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("poll_interval", "batch_size", "block_ms", "reclaim_idle_ms", mode="before")
    @classmethod
    def _normalize_numeric(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    @property
    def inbound_streams(self) -> dict[str, str]:
        """Map of stream name to the kind of events it carries."""
        return {
            self.user_events: "user",
            self.assessment_events: "assessment",
            self.proctoring_events: "proctoring",
        }
