"""Tests for the delivery orchestrator."""

from __future__ import annotations

from sqlalchemy import func, select
import pytest

from notification_service.features.notifications.channels import (
    ChannelRegistry,
    DeliveryResult,
    FuturePushChannelSender,
)
from notification_service.features.notifications.events import AssessmentPublishedEvent, AssignedUser
from notification_service.features.notifications.exceptions import TemplateNotFoundError
from notification_service.features.notifications.handlers import NotificationEventHandler
from notification_service.features.notifications.models import (
    Notification,
    NotificationChannel,
    NotificationPreference,
    NotificationStatus,
)
from notification_service.features.notifications.repository import NotificationPreferenceRepository
from notification_service.features.notifications.schemas import BulkNotificationRequest
from notification_service.features.notifications.service import (
    BulkResult,
    get_notification_service,
    resolve_template_name,
    set_notification_service,
)

WELCOME_VARS = {
    "firstName": "John",
    "lastName": "Doe",
    "username": "jdoe",
    "email": "john@example.com",
}


async def _records(session_factory) -> list[Notification]:
    async with session_factory() as session:
        result = await session.execute(select(Notification).order_by(Notification.id))
        return list(result.scalars().all())


async def _count(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(Notification.id)))).scalar_one()


class FailingPreferenceRepository(NotificationPreferenceRepository):
    """Raises for selected users to simulate a per-recipient failure."""

    def __init__(self, fail_for: set[int]) -> None:
        super().__init__()
        self.fail_for = fail_for

    async def find_by_user(self, session, user_id):
        if user_id in self.fail_for:
            raise RuntimeError(f"preference lookup failed for {user_id}")
        return await super().find_by_user(session, user_id)


class TestResolveTemplateName:
    """Test event type to template name mapping."""

    @pytest.mark.parametrize(
        ("event_type", "expected"),
        [
            ("user.registered", "welcome_user"),
            ("session.completed", "session_completion"),
            ("proctoring.violation", "proctoring_alert"),
            ("assessment.published", "new_assessment_assigned"),
        ],
    )
    def test_known_event_types(self, event_type: str, expected: str) -> None:
        assert resolve_template_name(event_type) == expected

    def test_unknown_event_type_replaces_dots(self) -> None:
        assert resolve_template_name("report.ready.weekly") == "report_ready_weekly"


class TestProcessNotification:
    """Test single-recipient processing."""

    @pytest.mark.asyncio
    async def test_welcome_email_is_sent(
        self, seeded_templates, make_service, session_factory, email_sender, publisher
    ) -> None:
        service = make_service()

        ids = await service.process_notification(
            "user.registered", 7, "john@example.com", WELCOME_VARS, [NotificationChannel.EMAIL]
        )
        await service.dispatcher.join()

        assert len(ids) == 1
        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.SENT
        assert record.sent_at is not None
        assert record.retry_count == 0
        assert record.channel == "EMAIL"
        assert record.subject == "Welcome to Our Platform, John!"
        assert "<h2>Welcome John Doe!</h2>" in record.content

        assert len(email_sender.requests) == 1
        assert email_sender.requests[0].recipient_email == "john@example.com"

        [sent] = publisher.of_type("notification.sent")
        assert sent["notificationId"] == ids[0]
        assert sent["recipientId"] == 7
        assert sent["channel"] == "EMAIL"
        assert sent["type"] == "user.registered"
        assert sent["status"] == "sent"
        assert sent["deliveryTime"]

    @pytest.mark.asyncio
    async def test_missing_template_creates_nothing(
        self, seeded_templates, make_service, session_factory, publisher
    ) -> None:
        service = make_service()

        ids = await service.process_notification("report.generated", 7, "a@example.com", {}, ["EMAIL"])
        await service.dispatcher.join()

        assert ids == []
        assert await _count(session_factory) == 0
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_missing_variables_render_as_placeholders(
        self, seeded_templates, make_service, session_factory
    ) -> None:
        service = make_service()

        await service.process_notification(
            "user.registered", 7, "john@example.com", {"firstName": "John"}, ["EMAIL"]
        )
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert "Welcome John {{lastName}}!" in record.content
        assert record.status == NotificationStatus.SENT

    @pytest.mark.asyncio
    async def test_none_variables_render_empty(self, seeded_templates, make_service, session_factory) -> None:
        service = make_service()

        await service.process_notification(
            "user.registered", 7, "john@example.com", {**WELCOME_VARS, "lastName": None}, ["EMAIL"]
        )
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert "Welcome John !" in record.content

    @pytest.mark.asyncio
    async def test_no_preference_allows_every_channel(
        self, seeded_templates, make_service, session_factory
    ) -> None:
        service = make_service()

        ids = await service.process_notification(
            "assessment.published", 9, "u9@example.com", {"assessmentName": "Algebra"}, ["SSE", "EMAIL"]
        )
        await service.dispatcher.join()

        assert len(ids) == 2
        assert {r.channel for r in await _records(session_factory)} == {"SSE", "EMAIL"}

    @pytest.mark.asyncio
    async def test_disabled_channel_is_skipped(
        self, seeded_templates, make_service, session_factory, email_sender
    ) -> None:
        async with session_factory() as session:
            session.add(NotificationPreference(user_id=9, email_enabled=False))
            await session.commit()
        service = make_service()

        ids = await service.process_notification(
            "assessment.published", 9, "u9@example.com", {"assessmentName": "Algebra"}, ["SSE", "EMAIL"]
        )
        await service.dispatcher.join()

        assert len(ids) == 1
        [record] = await _records(session_factory)
        assert record.channel == "SSE"
        assert email_sender.requests == []

    @pytest.mark.asyncio
    async def test_every_channel_disabled_creates_nothing(
        self, seeded_templates, make_service, session_factory
    ) -> None:
        async with session_factory() as session:
            session.add(NotificationPreference(user_id=9, email_enabled=False, sse_enabled=False))
            await session.commit()
        service = make_service()

        ids = await service.process_notification("assessment.published", 9, None, {}, ["SSE", "EMAIL"])

        assert ids == []
        assert await _count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_assessment_for_two_users_creates_four_records(
        self, seeded_templates, make_service, session_factory, email_sender, sse_sender
    ) -> None:
        service = make_service()
        handler = NotificationEventHandler(service)
        event = AssessmentPublishedEvent(
            assessment_id="a-1",
            assessment_name="Algebra",
            duration="60",
            due_date="2026-11-01",
            assigned_users=[
                AssignedUser(user_id=1, username="alice", email="alice@example.com"),
                AssignedUser(user_id=2, username="bob", email="bob@example.com"),
            ],
        )

        await handler.dispatch(event)
        await service.dispatcher.join()

        records = await _records(session_factory)
        assert len(records) == 4
        assert sorted((r.recipient_id, r.channel) for r in records) == [
            (1, "EMAIL"),
            (1, "SSE"),
            (2, "EMAIL"),
            (2, "SSE"),
        ]
        assert all(r.subject == "New Assessment Available - Algebra" for r in records)
        assert len(email_sender.requests) == 2
        assert len(sse_sender.requests) == 2

    @pytest.mark.asyncio
    async def test_email_content_is_escaped_realtime_content_is_plain(
        self, seeded_templates, make_service, session_factory, email_sender, sse_sender
    ) -> None:
        service = make_service()

        await service.process_notification(
            "assessment.published",
            9,
            "u9@example.com",
            {"assessmentName": "Tom & Jerry", "username": "<b>ann</b>"},
            ["SSE", "EMAIL"],
        )
        await service.dispatcher.join()

        records = {r.channel: r for r in await _records(session_factory)}
        assert "<strong>Tom &amp; Jerry</strong>" in records["EMAIL"].content
        assert "Hello &lt;b&gt;ann&lt;/b&gt;!" in records["EMAIL"].content
        assert "<strong>Tom & Jerry</strong>" in records["SSE"].content
        assert "Hello <b>ann</b>!" in records["SSE"].content
        assert records["SSE"].subject == records["EMAIL"].subject == "New Assessment Available - Tom & Jerry"
        assert sse_sender.requests[0].content == records["SSE"].content


class TestFailureHandling:
    """Test retry bookkeeping and the retry ceiling."""

    @pytest.mark.asyncio
    async def test_failed_send_stays_pending_below_ceiling(
        self, seeded_templates, make_service, session_factory, email_sender, publisher
    ) -> None:
        email_sender.default = DeliveryResult.failed("Failed to send email")
        service = make_service()

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["EMAIL"])
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.PENDING
        assert record.retry_count == 1
        assert record.error_message == "Failed to send email"

        [failed] = publisher.of_type("notification.failed")
        assert failed["willRetry"] is True
        assert failed["retryCount"] == 1
        assert failed["errorMessage"] == "Failed to send email"

    @pytest.mark.asyncio
    async def test_retry_ceiling_marks_failed(
        self, seeded_templates, make_service, session_factory, email_sender, publisher
    ) -> None:
        email_sender.default = DeliveryResult.failed("Failed to send email")
        service = make_service()

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["EMAIL"])
        await service.dispatcher.join()
        assert await service.retry_pending() == 1
        await service.dispatcher.join()
        assert await service.retry_pending() == 1
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.FAILED
        assert record.retry_count == 3
        assert [e["willRetry"] for e in publisher.of_type("notification.failed")] == [True, True, False]

        # Terminal records are not picked up again
        assert await service.retry_pending() == 0
        assert len(email_sender.requests) == 3

    @pytest.mark.asyncio
    async def test_retry_succeeds_after_failure(
        self, seeded_templates, make_service, session_factory, email_sender, publisher
    ) -> None:
        email_sender.results = [DeliveryResult.failed("Failed to send email")]
        service = make_service()

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["EMAIL"])
        await service.dispatcher.join()
        await service.retry_pending()
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.SENT
        assert record.retry_count == 1
        assert record.error_message is None
        assert len(publisher.of_type("notification.sent")) == 1

    @pytest.mark.asyncio
    async def test_sender_exception_becomes_failure(
        self, seeded_templates, make_service, session_factory, email_sender
    ) -> None:
        email_sender.error = ConnectionError("relay unreachable")
        service = make_service()

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["EMAIL"])
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.PENDING
        assert record.error_message == "relay unreachable"

    @pytest.mark.asyncio
    async def test_unregistered_channel_fails(
        self, seeded_templates, make_service, session_factory, email_sender
    ) -> None:
        service = make_service(channels=ChannelRegistry([email_sender]))

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["PUSH"])
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.error_message == "Unsupported channel: PUSH"
        assert record.retry_count == 1
        assert record.status == NotificationStatus.FAILED

    @pytest.mark.asyncio
    async def test_unimplemented_push_fails_without_retry(
        self, seeded_templates, make_service, session_factory, email_sender, publisher
    ) -> None:
        service = make_service(channels=ChannelRegistry([email_sender, FuturePushChannelSender()]))

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["PUSH"])
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.FAILED
        assert record.retry_count == 1
        assert record.error_message == "Push channel not implemented"

        [failed] = publisher.of_type("notification.failed")
        assert failed["willRetry"] is False
        assert failed["channel"] == "PUSH"

        assert await service.retry_pending() == 0
        await service.dispatcher.join()
        assert len(publisher.of_type("notification.failed")) == 1

    @pytest.mark.asyncio
    async def test_non_retryable_failure_is_terminal_below_ceiling(
        self, seeded_templates, make_service, session_factory, email_sender, publisher
    ) -> None:
        email_sender.default = DeliveryResult.failed("Mailbox does not exist", retryable=False)
        service = make_service()

        await service.process_notification("user.registered", 7, "john@example.com", WELCOME_VARS, ["EMAIL"])
        await service.dispatcher.join()

        [record] = await _records(session_factory)
        assert record.status == NotificationStatus.FAILED
        assert [e["willRetry"] for e in publisher.of_type("notification.failed")] == [False]

    @pytest.mark.asyncio
    async def test_handle_failed_notification_unknown_record(self, make_service) -> None:
        service = make_service()

        assert await service.handle_failed_notification(999, "boom") is None

    @pytest.mark.asyncio
    async def test_deliver_now_skips_terminal_record(
        self, seeded_templates, make_service, session_factory, email_sender
    ) -> None:
        service = make_service()
        [notification_id] = await service.process_notification(
            "user.registered", 7, "john@example.com", WELCOME_VARS, ["EMAIL"]
        )
        await service.dispatcher.join()

        assert await service.deliver_now(notification_id) is None
        assert len(email_sender.requests) == 1
        assert service.dispatcher._locks == {}


class TestBulkNotification:
    """Test bulk delivery."""

    @pytest.mark.asyncio
    async def test_bulk_counts_per_user_failures(
        self, seeded_templates, make_service, session_factory, publisher
    ) -> None:
        service = make_service(preference_repository=FailingPreferenceRepository(fail_for={3}))
        request = BulkNotificationRequest(
            user_ids=[1, 2, 3, 4, 5],
            type="assessment.published",
            channels=[NotificationChannel.EMAIL],
            common_data={"assessmentName": "Algebra", "duration": "60"},
            user_specific_data={1: {"username": "alice", "email": "alice@example.com"}},
        )

        result = await service.process_bulk_notification(request)
        await service.dispatcher.join()

        assert result == BulkResult(total=5, success=4, failed=1)
        records = await _records(session_factory)
        assert sorted(r.recipient_id for r in records) == [1, 2, 4, 5]
        alice = next(r for r in records if r.recipient_id == 1)
        assert alice.recipient_email == "alice@example.com"
        assert "Hello alice!" in alice.content

        [completed] = publisher.of_type("bulk.completed")
        assert completed["totalRecipients"] == 5
        assert completed["successfulSent"] == 4
        assert completed["failedSent"] == 1
        assert completed["notificationType"] == "assessment.published"
        assert completed["batchId"]

    @pytest.mark.asyncio
    async def test_bulk_missing_template_fails_everyone(
        self, seeded_templates, make_service, session_factory, publisher
    ) -> None:
        service = make_service()
        request = BulkNotificationRequest(user_ids=[1, 2, 3], type="report.generated", channels=["EMAIL"])

        result = await service.process_bulk_notification(request)

        assert result.as_dict() == {"total": 3, "success": 0, "failed": 3}
        assert await _count(session_factory) == 0
        assert publisher.events == []


class TestTemplates:
    """Test template lookup through the service."""

    @pytest.mark.asyncio
    async def test_get_template_caches_hits(self, seeded_templates, make_service) -> None:
        service = make_service()

        first = await service.get_template("welcome_user")
        second = await service.get_template("welcome_user")

        assert first is not None
        assert first is second

    @pytest.mark.asyncio
    async def test_get_template_missing(self, seeded_templates, make_service) -> None:
        service = make_service()

        assert await service.get_template("does_not_exist") is None

    @pytest.mark.asyncio
    async def test_require_template_raises_when_missing(self, seeded_templates, make_service) -> None:
        service = make_service()

        with pytest.raises(TemplateNotFoundError) as exc_info:
            await service.require_template("does_not_exist", "does.not_exist")

        assert exc_info.value.template_name == "does_not_exist"
        assert exc_info.value.event_type == "does.not_exist"
        assert (await service.require_template("welcome_user")).name == "welcome_user"


class TestShutdown:
    """Test draining and the global accessor."""

    @pytest.mark.asyncio
    async def test_shutdown_rejects_new_sends(self, seeded_templates, make_service, session_factory) -> None:
        service = make_service()

        assert await service.shutdown() == 0
        assert service.send_notification(1) is False

    @pytest.mark.asyncio
    async def test_global_service_accessor(self, make_service) -> None:
        service = make_service()
        set_notification_service(service)
        try:
            assert get_notification_service() is service
        finally:
            set_notification_service(None)

        with pytest.raises(RuntimeError):
            get_notification_service()
