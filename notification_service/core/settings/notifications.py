"""Delivery pipeline settings."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric


class NotificationSettings(BaseSettings):
    """Orchestrator, retry and dispatch settings.

    Environment variables use NOTIFY_ prefix.
    Example: NOTIFY_MAX_RETRY_ATTEMPTS=3
    """

    # ──────────────────────────────────────────────────────────────
    # Retry policy
    # ──────────────────────────────────────────────────────────────

    max_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Failed deliveries become terminal once retry_count reaches this value",
    )
    retry_interval: float = Field(
        default=60.0,
        ge=1.0,
        le=86400.0,
        description="Fixed delay between retry sweeps in seconds",
    )

    # ──────────────────────────────────────────────────────────────
    # Dispatch
    # ──────────────────────────────────────────────────────────────

    dispatch_concurrency: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Maximum channel sends in flight at once",
    )
    shutdown_timeout: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Seconds to wait for in-flight sends on shutdown",
    )

    # ──────────────────────────────────────────────────────────────
    # Templates
    # ──────────────────────────────────────────────────────────────

    template_cache_ttl: float = Field(
        default=300.0,
        ge=0.0,
        description="Seconds a looked-up template stays cached (0 disables caching)",
    )
    seed_templates: bool = Field(
        default=True,
        description="Insert the default templates on startup when they are missing",
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("max_retry_attempts", "retry_interval", "template_cache_ttl", mode="before")
    @classmethod
    def _normalize_numeric(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)
