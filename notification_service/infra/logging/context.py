"""Per-task logging context.

The ingestion loop tags each stream entry with ``stream`` and ``message_id``
and the dispatcher adds ``notification_id``; every record logged further
down the same task carries those fields without threading them through calls.
"""

from __future__ import annotations

from contextvars import ContextVar
import logging
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**fields: Any) -> None:
    """Merge ``fields`` into the current task's context."""
    _log_context.set({**_log_context.get(), **fields})


def remove_from_log_context(*keys: str) -> None:
    _log_context.set({k: v for k, v in _log_context.get().items() if k not in keys})


def get_log_context() -> dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Copy context fields onto each record, never overwriting record attributes."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
