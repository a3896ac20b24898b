"""Server-sent events connection settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RealtimeSettings(BaseSettings):
    """Push connection registry settings.

    Environment variables use SSE_ prefix.
    Example: SSE_HEARTBEAT_INTERVAL=30
    """

    # ──────────────────────────────────────────────────────────────
    # Connection limits
    # ──────────────────────────────────────────────────────────────

    max_connections_per_user: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum simultaneous connections per user; the oldest is evicted",
    )

    queue_size: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Per-connection outbound buffer; a full buffer counts as a failed write",
    )

    # ──────────────────────────────────────────────────────────────
    # Heartbeat settings
    # ──────────────────────────────────────────────────────────────

    heartbeat_interval: float = Field(
        default=30.0,
        ge=0,
        le=300,
        description="Interval between heartbeat frames in seconds (0 to disable)",
    )

    send_timeout: float = Field(
        default=5.0,
        ge=0.1,
        le=60.0,
        description="Timeout for a single frame write to the client",
    )

    model_config = SettingsConfigDict(
        env_prefix="SSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
