"""Domain errors raised inside the delivery pipeline."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for delivery pipeline errors."""


class TemplateNotFoundError(NotificationError):
    """No template is registered under the resolved name."""

    def __init__(self, template_name: str, event_type: str | None = None) -> None:
        super().__init__(f"Template not found: {template_name}")
        self.template_name = template_name
        self.event_type = event_type


class TemplateRenderError(NotificationError):
    """Raised when a placeholder value cannot be rendered."""

    def __init__(
        self,
        message: str,
        template_name: str | None = None,
        missing_vars: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars or []


class EventDecodeError(NotificationError):
    """An inbound stream entry could not be turned into a known event."""

    def __init__(self, message: str, stream: str | None = None, message_id: str | None = None) -> None:
        super().__init__(message)
        self.stream = stream
        self.message_id = message_id


class ChannelNotImplementedError(NotificationError):
    """The requested channel has no working transport."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"{channel.capitalize()} channel not implemented")
        self.channel = channel
