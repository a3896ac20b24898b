"""Bearer token validation settings."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ._sanitizers import split_csv


class AuthSettings(BaseSettings):
    """JWT validation for tokens issued by the external identity provider.

    Environment variables use AUTH_ prefix.
    Example: AUTH_JWT_PUBLIC_KEY="-----BEGIN PUBLIC KEY-----...", AUTH_JWT_ALGORITHMS=RS256
    """

    # ──────────────────────────────────────────────────────────────
    # Key material
    # ──────────────────────────────────────────────────────────────

    jwt_secret: SecretStr | None = Field(
        default=None,
        description="Shared secret for HMAC-signed tokens",
    )
    jwt_public_key: str | None = Field(
        default=None,
        description="PEM public key (or certificate) for RSA/EC-signed tokens",
    )
    jwt_algorithms: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["RS256"],
        description="Accepted signing algorithms (comma-separated)",
    )

    # ──────────────────────────────────────────────────────────────
    # Claim validation
    # ──────────────────────────────────────────────────────────────

    audience: str | None = Field(default=None, description="Expected 'aud' claim")
    issuer: str | None = Field(default=None, description="Expected 'iss' claim")
    leeway: int = Field(default=30, ge=0, le=600, description="Clock skew tolerance in seconds")

    # ──────────────────────────────────────────────────────────────
    # Authorization
    # ──────────────────────────────────────────────────────────────

    admin_roles: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["ADMIN", "STAFF"],
        description="Roles granting administrative access (comma-separated)",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("jwt_algorithms", "admin_roles", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        return split_csv(value)

    @field_validator("admin_roles", mode="after")
    @classmethod
    def _normalize_roles(cls, value: list[str]) -> list[str]:
        return [role.upper().removeprefix("ROLE_") for role in value]

    @property
    def verification_key(self) -> str | None:
        """Key passed to the JWT decoder; the public key wins over the secret."""
        if self.jwt_public_key:
            return self.jwt_public_key
        if self.jwt_secret is not None:
            return self.jwt_secret.get_secret_value()
        return None

    @property
    def is_configured(self) -> bool:
        return self.verification_key is not None
