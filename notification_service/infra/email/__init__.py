"""Outbound email transport."""

from __future__ import annotations

from .providers import (
    BaseEmailProvider,
    ConsoleProvider,
    EmailDeliveryResult,
    SMTPProvider,
    create_email_provider,
    get_email_provider,
    reset_email_provider,
)
from .schemas import EmailMessage

__all__ = [
    "BaseEmailProvider",
    "ConsoleProvider",
    "EmailDeliveryResult",
    "EmailMessage",
    "SMTPProvider",
    "create_email_provider",
    "get_email_provider",
    "reset_email_provider",
]
