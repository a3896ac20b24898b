"""Push connection registry lifespan management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.infra.realtime import start_push_registry, stop_push_registry

from .registry import lifespan_registry

if TYPE_CHECKING:
    from notification_service.core.settings import RealtimeSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="realtime",
    startup_order=20,
    requires=["core"],
)
async def startup_realtime(realtime_settings: RealtimeSettings, **kwargs: object) -> None:
    """Start the registry and its heartbeat."""
    await start_push_registry(realtime_settings)


@lifespan_registry.register(name="realtime")
async def shutdown_realtime(**kwargs: object) -> None:
    """Close every open event stream."""
    await stop_push_registry()
