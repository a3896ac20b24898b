"""SMTP email provider using aiosmtplib.

Supports STARTTLS (port 587), implicit TLS (port 465) and plain SMTP, with
optional LOGIN/PLAIN authentication.
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import ssl
from typing import TYPE_CHECKING
import uuid

import aiosmtplib

from .base import BaseEmailProvider, EmailDeliveryResult

if TYPE_CHECKING:
    from notification_service.core.settings import EmailSettings
    from notification_service.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


class SMTPProvider(BaseEmailProvider):
    """Sends HTML mail through an SMTP relay.

    Example:
        provider = SMTPProvider(get_email_settings())
        result = await provider.send(message)
    """

    def __init__(self, settings: EmailSettings) -> None:
        super().__init__(settings)
        logger.info(
            "SMTP provider initialized",
            extra={
                "host": settings.smtp_host,
                "port": settings.smtp_port,
                "use_tls": settings.use_tls,
                "use_ssl": settings.use_ssl,
            },
        )

    @property
    def provider_name(self) -> str:
        return "smtp"

    def _create_ssl_context(self) -> ssl.SSLContext | None:
        if not (self._settings.use_tls or self._settings.use_ssl):
            return None
        context = ssl.create_default_context()
        if not self._settings.validate_certs:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _client(self, timeout: float) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self._settings.smtp_host,
            port=self._settings.smtp_port,
            use_tls=self._settings.use_ssl,  # Implicit TLS
            start_tls=self._settings.use_tls,  # STARTTLS
            tls_context=self._create_ssl_context(),
            timeout=timeout,
        )

    async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult:
        mime_message = self._build_mime_message(message)
        message_id = mime_message["Message-ID"]
        try:
            smtp = self._client(self._settings.timeout)
            async with smtp:
                if self._settings.requires_auth:
                    assert self._settings.smtp_password is not None
                    await smtp.login(
                        self._settings.smtp_username or "",
                        self._settings.smtp_password.get_secret_value(),
                    )
                errors, _response = await smtp.send_message(mime_message)
        except aiosmtplib.SMTPAuthenticationError as e:
            return EmailDeliveryResult.failure_result(
                self.provider_name, f"SMTP authentication failed: {e}", "AUTH_FAILED"
            )
        except aiosmtplib.SMTPRecipientsRefused as e:
            return EmailDeliveryResult.failure_result(
                self.provider_name, f"All recipients refused: {e}", "RECIPIENTS_REFUSED"
            )
        except aiosmtplib.SMTPConnectError as e:
            return EmailDeliveryResult.failure_result(
                self.provider_name, f"SMTP connection failed: {e}", "CONNECTION_ERROR"
            )
        except aiosmtplib.SMTPException as e:
            return EmailDeliveryResult.failure_result(
                self.provider_name, f"SMTP error: {e}", "SMTP_ERROR"
            )

        if errors and len(errors) >= len(message.to):
            return EmailDeliveryResult.failure_result(
                self.provider_name,
                f"All recipients rejected: {', '.join(errors)}",
                "RECIPIENTS_REFUSED",
            )
        if errors:
            logger.warning(
                "Some SMTP recipients rejected",
                extra={"message_id": message_id, "rejected": list(errors)},
            )
        return EmailDeliveryResult.success_result(
            message_id,
            self.provider_name,
            host=self._settings.smtp_host,
            port=self._settings.smtp_port,
        )

    async def _do_health_check(self) -> bool:
        smtp = self._client(timeout=5.0)
        await smtp.connect()
        await smtp.quit()
        return True

    def _build_mime_message(self, message: EmailMessage) -> MIMEMultipart:
        mime_msg = MIMEMultipart("alternative")
        mime_msg["From"] = self.sender_header(message)
        mime_msg["To"] = ", ".join(message.to)
        mime_msg["Subject"] = message.subject
        mime_msg["Message-ID"] = f"<{uuid.uuid4()}@{self._settings.smtp_host}>"
        mime_msg["Date"] = datetime.now(UTC).strftime("%a, %d %b %Y %H:%M:%S +0000")
        for key, value in message.headers.items():
            mime_msg[key] = value
        mime_msg.attach(MIMEText(message.body_html, "html", "utf-8"))
        return mime_msg
