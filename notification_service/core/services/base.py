"""Base class for stateful services."""

from __future__ import annotations

import logging

from notification_service.infra.logging import get_lazy_logger


class BaseService:
    """Gives each service a logger named after its class.

    ``self.logger`` is for INFO and above; ``self._lazy`` takes callables for
    DEBUG lines that are expensive to format.
    """

    def __init__(self) -> None:
        name = f"notification_service.{type(self).__name__}"
        self.logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)
