"""Email provider contract and shared send wrapper."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from notification_service.core.settings import EmailSettings
    from notification_service.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailDeliveryResult:
    """Outcome of one send attempt.

    Attributes:
        success: Whether the transport accepted the message
        message_id: Provider-assigned message ID
        provider: Provider name (smtp, console)
        error: Error message if failed
        error_code: Error category for programmatic handling
        duration_ms: Time taken to send in milliseconds
    """

    success: bool
    message_id: str | None
    provider: str
    error: str | None = None
    error_code: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success_result(cls, message_id: str, provider: str, **metadata: Any) -> EmailDeliveryResult:
        return cls(success=True, message_id=message_id, provider=provider, metadata=metadata)

    @classmethod
    def failure_result(cls, provider: str, error: str, error_code: str | None = None) -> EmailDeliveryResult:
        return cls(success=False, message_id=None, provider=provider, error=error, error_code=error_code)


class BaseEmailProvider(ABC):
    """Base class adding timing, logging and exception capture around ``_do_send``.

    ``send`` never raises; transport errors become a failed result.
    """

    def __init__(self, settings: EmailSettings) -> None:
        self._settings = settings

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @abstractmethod
    async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult: ...

    async def _do_health_check(self) -> bool:
        return True

    async def send(self, message: EmailMessage) -> EmailDeliveryResult:
        """Send ``message`` and report the outcome."""
        start_time = time.perf_counter()
        try:
            result = await self._do_send(message)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.exception(
                f"Unexpected error in {self.provider_name} provider",
                extra={"provider": self.provider_name, "error": str(e), "duration_ms": duration_ms},
            )
            return replace(
                EmailDeliveryResult.failure_result(self.provider_name, str(e), "UNEXPECTED_ERROR"),
                duration_ms=duration_ms,
            )

        if result.duration_ms is None:
            result = replace(result, duration_ms=int((time.perf_counter() - start_time) * 1000))

        if result.success:
            logger.info(
                f"Email sent via {self.provider_name}",
                extra={
                    "message_id": result.message_id,
                    "provider": self.provider_name,
                    "recipients": len(message.to),
                    "duration_ms": result.duration_ms,
                },
            )
        else:
            logger.warning(
                f"Email send failed via {self.provider_name}",
                extra={
                    "provider": self.provider_name,
                    "error": result.error,
                    "error_code": result.error_code,
                    "duration_ms": result.duration_ms,
                },
            )
        return result

    async def health_check(self) -> bool:
        try:
            return await self._do_health_check()
        except Exception as e:
            logger.warning(
                f"{self.provider_name} health check failed",
                extra={"provider": self.provider_name, "error": str(e)},
            )
            return False

    def sender_header(self, message: EmailMessage) -> str:
        """``Name <address>`` for the From header, falling back to settings."""
        from_email = message.from_email or self._settings.default_from_email
        from_name = message.from_name or self._settings.default_from_name
        return f"{from_name} <{from_email}>" if from_name else str(from_email)
