"""Core lifespan services: logging and metrics.

These services run first and have no dependencies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.infra.logging import setup_logging, shutdown
from notification_service.infra.metrics.prometheus import app_info

from .registry import lifespan_registry

if TYPE_CHECKING:
    from notification_service.core.settings import AppSettings, LoggingSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="core",
    startup_order=1,
)
async def startup_core(
    app_settings: AppSettings,
    log_settings: LoggingSettings,
    **kwargs: object,
) -> None:
    """Configure logging and publish the application info metric."""
    setup_logging(log_settings, service_name=app_settings.service_name, force=True)
    logger.info(
        "Application starting",
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
        },
    )

    app_info.labels(
        service=app_settings.service_name,
        version=app_settings.version,
        environment=app_settings.environment,
    ).set(1)
    logger.info("Application metrics initialized", extra={"metrics_endpoint": "/metrics"})


@lifespan_registry.register(name="core")
async def shutdown_core(**kwargs: object) -> None:
    """Flush queued log records."""
    logger.debug("Core services shutting down")
    shutdown()
