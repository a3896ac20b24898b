"""HTTP application settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """FastAPI and server settings.

    Environment variables use APP_ prefix.
    Example: APP_PORT=8085, APP_CORS_ORIGINS='["https://portal.example.com"]'
    """

    service_name: str = Field(
        default="notification-service",
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Static ``service`` field on logs and the app_info metric",
    )
    title: str = "Notification Service API"
    description: str = "Delivers platform events to users over email and server-sent events"
    version: str = Field(default="1.0.0", pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$")
    environment: Environment = "development"
    api_prefix: str = Field(default="/api/v1", pattern=r"^/.*$")

    debug: bool = False
    docs_enabled: bool = Field(default=True, description="Serve /docs and /openapi.json")
    root_path: str = Field(default="", description="Set when served behind a path-rewriting proxy")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # Browser clients open the SSE stream cross-origin
    cors_origins: list[str] = Field(default_factory=list)
    cors_allow_credentials: bool = True

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
