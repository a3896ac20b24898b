"""Outbound email transport settings."""

from __future__ import annotations

from typing import Literal

from pydantic import EmailStr, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """SMTP transport for the EMAIL channel.

    ``console`` logs each message instead of sending it and is the default
    outside production. Environment variables use EMAIL_ prefix.
    Example: EMAIL_BACKEND=smtp, EMAIL_SMTP_HOST=smtp.example.com
    """

    backend: Literal["smtp", "console"] = "console"

    smtp_host: str = Field(default="localhost", min_length=1)
    smtp_port: int = Field(default=587, ge=1, le=65535, description="587 STARTTLS, 465 implicit TLS, 25 plain")
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    use_tls: bool = Field(default=True, description="Upgrade the connection with STARTTLS")
    use_ssl: bool = Field(default=False, description="Connect with implicit TLS")
    validate_certs: bool = True
    timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="Per-send SMTP timeout in seconds")

    default_from_email: EmailStr = "noreply@example.com"
    default_from_name: str = Field(default="Notification Service", max_length=100)

    @model_validator(mode="after")
    def check_transport(self) -> EmailSettings:
        if self.use_tls and self.use_ssl:
            msg = "use_tls and use_ssl are mutually exclusive"
            raise ValueError(msg)
        if (self.smtp_username is None) != (self.smtp_password is None):
            msg = "smtp_username and smtp_password must be set together"
            raise ValueError(msg)
        return self

    @property
    def requires_auth(self) -> bool:
        return self.smtp_username is not None

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
