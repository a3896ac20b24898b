"""Relational store settings.

Production runs on PostgreSQL through psycopg 3. ``DATABASE_URL`` wins over
the ``DB_*`` components; a non-PostgreSQL URL such as
``sqlite+aiosqlite:///./notifications.db`` is used exactly as given.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus, unquote, urlparse

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PostgresSettings(BaseSettings):
    """Connection and pool settings. Environment variables use DB_ prefix."""

    enabled: bool = True
    dsn: str | None = Field(default=None, alias="DATABASE_URL")

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    name: str = "notification_db"
    driver: str = "psycopg"

    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_recycle: int = Field(default=1800, ge=0, description="Seconds before a pooled connection is replaced")
    connect_timeout: int = Field(default=5, ge=1, le=60)
    echo: bool = False

    create_schema: bool = Field(
        default=False,
        description="Create tables and seed templates at startup instead of running alembic",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _split_dsn(self) -> PostgresSettings:
        # Frozen model; components are derived once here
        if not self._is_postgres_dsn:
            return self
        parsed = urlparse(self.dsn)
        parts: dict[str, Any] = {
            "host": parsed.hostname,
            "port": parsed.port,
            "user": unquote(parsed.username) if parsed.username else None,
            "password": SecretStr(unquote(parsed.password)) if parsed.password else None,
            "name": parsed.path.lstrip("/") or None,
            "driver": parsed.scheme.partition("+")[2] or None,
        }
        for key, value in parts.items():
            if value is not None:
                object.__setattr__(self, key, value)
        return self

    @property
    def _is_postgres_dsn(self) -> bool:
        return bool(self.dsn) and urlparse(self.dsn).scheme.startswith("postgres")

    @property
    def url(self) -> str:
        if self.dsn and not self._is_postgres_dsn:
            return self.dsn
        password = quote_plus(self.password.get_secret_value())
        return f"postgresql+{self.driver}://{self.user}:{password}@{self.host}:{self.port}/{self.name}"

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.dsn or self.host)

    def sqlalchemy_engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``; SQLite takes no pool options."""
        if self.is_sqlite:
            return {"echo": self.echo}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": self.pool_recycle,
            "connect_args": {"connect_timeout": self.connect_timeout, "application_name": "notification-service"},
            "echo": self.echo,
        }
