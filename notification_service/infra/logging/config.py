"""Root logger setup.

Records from every module go through one ``QueueHandler`` on the root logger.
A ``QueueListener`` thread owns the real handlers, so a slow disk or stderr
never stalls the ingestion loop or an SSE stream.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING

from .context import ContextInjectingFilter
from .formatters import JSONFormatter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notification_service.core.settings.logs import LoggingSettings

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_listener: QueueListener | None = None
_queue_handler: QueueHandler | None = None
_configured = False

logger = logging.getLogger(__name__)


def shutdown() -> None:
    """Stop the listener thread after it flushes pending records."""
    global _listener, _queue_handler

    if _listener is not None:
        _listener.stop()
        _listener = None
    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    service_name: str = "notification-service",
    force: bool = False,
) -> None:
    """Configure logging once per process unless ``force`` is set."""
    global _configured

    if _configured and not force:
        return

    if log_settings is None:
        from notification_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(service_name=service_name, **log_settings.to_logging_kwargs())
    _configured = True


def configure_logging(
    log_level: str = "INFO",
    *,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    quiet_loggers: Iterable[str] = (),
    service_name: str = "notification-service",
) -> None:
    """Apply a logging configuration, replacing any previous one."""
    global _listener, _queue_handler

    shutdown()
    logging.captureWarnings(True)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {"level": log_level.upper(), "handlers": []},
            "loggers": {name: {"level": "WARNING"} for name in quiet_loggers},
        }
    )

    formatter = _build_formatter(json_logs, service_name)
    handlers: list[logging.Handler] = []
    if console_enabled:
        handlers.append(logging.StreamHandler())
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(path, maxBytes=file_max_bytes, backupCount=file_backup_count, encoding="utf-8")
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    queue: Queue[logging.LogRecord] = Queue()
    if handlers:
        _listener = QueueListener(queue, *handlers, respect_handler_level=True)
        _listener.start()
        atexit.register(shutdown)

    _queue_handler = QueueHandler(queue)
    # Handler filters see records propagated from child loggers; logger filters do not
    if include_context:
        _queue_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(_queue_handler)

    logger.debug(
        "Logging configured",
        extra={"json": json_logs, "file": str(file_path) if file_path else None, "level": log_level},
    )


def _build_formatter(json_logs: bool, service_name: str) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(
            fmt_keys={"level": "levelname", "logger": "name", "message": "message"},
            static={"service": service_name},
        )
    return logging.Formatter(fmt=TEXT_FORMAT)

