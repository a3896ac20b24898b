"""Live server-sent event connections."""

from __future__ import annotations

from .registry import (
    PushConnection,
    PushConnectionRegistry,
    get_push_registry,
    start_push_registry,
    stop_push_registry,
)

__all__ = [
    "PushConnection",
    "PushConnectionRegistry",
    "get_push_registry",
    "start_push_registry",
    "stop_push_registry",
]
