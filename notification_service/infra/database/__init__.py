"""Database engine and session lifecycle."""

from __future__ import annotations

from .session import (
    check_database_health,
    close_database,
    create_engine_from_settings,
    create_session_factory,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "check_database_health",
    "close_database",
    "create_engine_from_settings",
    "create_session_factory",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
