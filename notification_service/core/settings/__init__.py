"""Modular Pydantic Settings v2 configuration.

One frozen settings model per domain, each read from its own environment
prefix (APP_, LOG_, DB_, REDIS_, STREAM_, NOTIFY_, EMAIL_, SSE_, AUTH_) and
an optional ``.env`` file.

Import settings via the cached loaders:
    from notification_service.core.settings import get_notification_settings
"""

from __future__ import annotations

from .app import AppSettings
from .auth import AuthSettings
from .email import EmailSettings
from .loader import (
    clear_all_caches,
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
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .postgres import PostgresSettings
from .realtime import RealtimeSettings
from .redis import RedisSettings
from .streams import StreamSettings

__all__ = [
    "AppSettings",
    "AuthSettings",
    "EmailSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PostgresSettings",
    "RealtimeSettings",
    "RedisSettings",
    "StreamSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_auth_settings",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_realtime_settings",
    "get_redis_settings",
    "get_stream_settings",
]
