"""Email providers and the factory that picks one from settings.

Usage:
    from notification_service.infra.email.providers import get_email_provider

    provider = get_email_provider()
    result = await provider.send(message)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.core.settings import get_email_settings

from .base import BaseEmailProvider, EmailDeliveryResult
from .console import ConsoleProvider
from .smtp import SMTPProvider

if TYPE_CHECKING:
    from notification_service.core.settings import EmailSettings

_PROVIDERS: dict[str, type[BaseEmailProvider]] = {
    "smtp": SMTPProvider,
    "console": ConsoleProvider,
}

_provider: BaseEmailProvider | None = None


def create_email_provider(settings: EmailSettings) -> BaseEmailProvider:
    """Instantiate the provider named by ``settings.backend``."""
    return _PROVIDERS[settings.backend](settings)


def get_email_provider() -> BaseEmailProvider:
    """Get or create the configured provider singleton."""
    global _provider
    if _provider is None:
        _provider = create_email_provider(get_email_settings())
    return _provider


def reset_email_provider() -> None:
    global _provider
    _provider = None


__all__ = [
    "BaseEmailProvider",
    "ConsoleProvider",
    "EmailDeliveryResult",
    "SMTPProvider",
    "create_email_provider",
    "get_email_provider",
    "reset_email_provider",
]
