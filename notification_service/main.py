"""Console entry point: ``notification-service`` runs the API under uvicorn."""

from __future__ import annotations

import uvicorn

from notification_service.core.settings import get_app_settings, get_logging_settings
from notification_service.infra.logging import setup_logging


def main() -> None:
    settings = get_app_settings()
    setup_logging(get_logging_settings(), service_name=settings.service_name)

    # log_config=None keeps uvicorn from replacing the root queue handler
    uvicorn.run(
        "notification_service.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        access_log=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    main()
