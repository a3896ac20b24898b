"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG, LOG_JSON=false, LOG_FILE_ENABLED=true
    """

    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(
        default=True,
        alias="json",
        description="Emit one JSON object per line instead of plain text",
    )
    console_enabled: bool = Field(default=True, description="Write records to stderr")
    include_context: bool = Field(
        default=True,
        description="Copy contextvars fields (stream, entry id, notification id) onto records",
    )

    file_enabled: bool = Field(default=False, description="Also write records to a rotating file")
    file_path: Path = Field(default=Path("logs/notification-service.jsonl"))
    file_max_bytes: int = Field(default=10_485_760, ge=1024, description="Rotate after this many bytes")
    file_backup_count: int = Field(default=5, ge=0, le=100)

    quiet_loggers: list[str] = Field(
        default_factory=lambda: ["apscheduler.executors.default", "aiosmtplib", "sse_starlette.sse"],
        description="Third-party loggers held at WARNING; the scheduler logs every sweep tick at INFO",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Return kwargs suitable for configure_logging(...)."""
        return {
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "include_context": self.include_context,
            "file_path": self.file_path if self.file_enabled else None,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "quiet_loggers": tuple(self.quiet_loggers),
        }

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        env_ignore_empty=True,
    )
