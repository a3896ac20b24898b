"""Cached settings loaders.

Each settings group is read from the environment once per process. Tests
that change the environment call ``clear_all_caches()`` afterwards.
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .auth import AuthSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .postgres import PostgresSettings
from .realtime import RealtimeSettings
from .redis import RedisSettings
from .streams import StreamSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    return AuthSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    return EmailSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """Retry, dispatch and bulk limits for the orchestrator."""
    return NotificationSettings()


@lru_cache(maxsize=1)
def get_realtime_settings() -> RealtimeSettings:
    return RealtimeSettings()


@lru_cache(maxsize=1)
def get_redis_settings() -> RedisSettings:
    return RedisSettings()


@lru_cache(maxsize=1)
def get_stream_settings() -> StreamSettings:
    """Stream names, consumer group and polling cadence."""
    return StreamSettings()


_LOADERS = (
    get_app_settings,
    get_auth_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_notification_settings,
    get_realtime_settings,
    get_redis_settings,
    get_stream_settings,
)


def clear_all_caches() -> None:
    for loader in _LOADERS:
        loader.cache_clear()
