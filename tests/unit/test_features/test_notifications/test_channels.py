"""Tests for delivery channel senders."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from notification_service.core.settings import RealtimeSettings
from notification_service.features.notifications.channels import (
    ChannelRegistry,
    DeliveryRequest,
    EmailChannelSender,
    FuturePushChannelSender,
    RealtimeChannelSender,
)
from notification_service.features.notifications.models import NotificationChannel
from notification_service.infra.email import EmailDeliveryResult
from notification_service.infra.realtime import PushConnectionRegistry


def _request(**overrides) -> DeliveryRequest:
    values = {
        "notification_id": 11,
        "recipient_id": 42,
        "recipient_email": "john@example.com",
        "notification_type": "user.registered",
        "subject": "Welcome",
        "content": "<p>Hello</p>",
    }
    values.update(overrides)
    return DeliveryRequest(**values)


@pytest.fixture
def email_provider() -> MagicMock:
    provider = MagicMock()
    provider.send = AsyncMock(return_value=EmailDeliveryResult.success_result("msg-1", "console"))
    return provider


class TestEmailChannelSender:
    """Test the email channel."""

    @pytest.mark.asyncio
    async def test_sends_subject_and_html_body(self, email_provider: MagicMock) -> None:
        sender = EmailChannelSender(email_provider)

        result = await sender.send(_request())

        assert result.success is True
        message = email_provider.send.await_args.args[0]
        assert message.to == ["john@example.com"]
        assert message.subject == "Welcome"
        assert message.body_html == "<p>Hello</p>"
        assert message.headers["X-Notification-Id"] == "11"

    @pytest.mark.asyncio
    async def test_missing_email_fails_without_sending(self, email_provider: MagicMock) -> None:
        sender = EmailChannelSender(email_provider)

        result = await sender.send(_request(recipient_email=None))

        assert result.success is False
        assert result.error == "Recipient email is null"
        email_provider.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_failure(self, email_provider: MagicMock) -> None:
        email_provider.send.return_value = EmailDeliveryResult.failure_result("smtp", "550 mailbox unavailable")
        sender = EmailChannelSender(email_provider)

        result = await sender.send(_request())

        assert result.success is False
        assert result.error == "Failed to send email"

    @pytest.mark.asyncio
    async def test_invalid_address(self, email_provider: MagicMock) -> None:
        sender = EmailChannelSender(email_provider)

        result = await sender.send(_request(recipient_email="not-an-address"))

        assert result.success is False
        assert result.error == "Invalid recipient email: not-an-address"
        email_provider.send.assert_not_awaited()

    def test_channel(self) -> None:
        assert EmailChannelSender(MagicMock()).channel == NotificationChannel.EMAIL


class TestRealtimeChannelSender:
    """Test the server-sent events channel."""

    @pytest.mark.asyncio
    async def test_unicasts_payload_with_type_as_event_name(self) -> None:
        registry = MagicMock()
        registry.send_to_user = AsyncMock(return_value=True)
        sender = RealtimeChannelSender(registry)

        result = await sender.send(_request())

        assert result.success is True
        registry.send_to_user.assert_awaited_once_with(
            42,
            "user.registered",
            {
                "notificationId": 11,
                "type": "user.registered",
                "subject": "Welcome",
                "content": "<p>Hello</p>",
            },
        )

    @pytest.mark.asyncio
    async def test_offline_user_fails(self) -> None:
        registry = MagicMock()
        registry.send_to_user = AsyncMock(return_value=False)

        result = await RealtimeChannelSender(registry).send(_request())

        assert result.success is False
        assert result.error == "User not connected to SSE"

    @pytest.mark.asyncio
    async def test_frame_reaches_open_connection(self) -> None:
        registry = PushConnectionRegistry(RealtimeSettings(heartbeat_interval=0))
        connection = await registry.create_connection_for_user(42)

        result = await RealtimeChannelSender(registry).send(_request())

        assert result.success is True
        frames = [connection._queue.get_nowait() for _ in range(connection.pending)]
        assert [f["event"] for f in frames] == ["connect", "user.registered"]
        assert json.loads(frames[1]["data"])["notificationId"] == 11


class TestFuturePushChannelSender:
    """Test the push placeholder."""

    @pytest.mark.asyncio
    async def test_always_fails(self) -> None:
        result = await FuturePushChannelSender().send(_request())

        assert result.success is False
        assert result.error == "Push channel not implemented"
        assert result.retryable is False


class TestChannelRegistry:
    """Test sender lookup."""

    def test_default_covers_every_channel(self) -> None:
        registry = ChannelRegistry.default()

        for channel in NotificationChannel:
            assert channel in registry
            assert registry.get(channel).channel == channel

    def test_lookup_by_string(self) -> None:
        registry = ChannelRegistry.default()

        assert isinstance(registry.get("EMAIL"), EmailChannelSender)

    def test_unknown_channel_raises_key_error(self) -> None:
        registry = ChannelRegistry([FuturePushChannelSender()])

        with pytest.raises(KeyError):
            registry.get("FAX")
        with pytest.raises(KeyError):
            registry.get("EMAIL")
