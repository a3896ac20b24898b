"""Delivery orchestrator.

Turns an event into rendered delivery records, one per enabled channel, and
hands each record to the dispatch runner. Outcomes come back through
``_record_outcome``, which moves the record to SENT, keeps it PENDING for the
retry sweep, or marks it FAILED once the retry ceiling is reached or the failure
is terminal. Every transition is committed before the matching outbound event
is published.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
import time
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from notification_service.core.services.base import BaseService
from notification_service.core.settings import get_notification_settings
from notification_service.features.notifications.channels import (
    ChannelRegistry,
    DeliveryRequest,
    DeliveryResult,
)
from notification_service.features.notifications.dispatch import DispatchRunner
from notification_service.features.notifications.events import (
    BulkNotificationCompletedEvent,
    NotificationFailedEvent,
    NotificationSentEvent,
)
from notification_service.features.notifications.exceptions import TemplateNotFoundError, TemplateRenderError
from notification_service.features.notifications.metrics import (
    notification_bulk_batches_total,
    notification_bulk_recipients_total,
    notification_created_total,
    notification_delivery_duration_seconds,
    notification_delivery_total,
    notification_retry_total,
    notification_skipped_total,
    notification_template_missing_total,
)
from notification_service.features.notifications.models import (
    Notification,
    NotificationChannel,
    NotificationStatus,
)
from notification_service.features.notifications.repository import (
    get_notification_preference_repository,
    get_notification_repository,
    get_notification_template_repository,
)
from notification_service.features.notifications.templates import (
    TemplateCache,
    TemplateSnapshot,
    get_template_renderer,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.core.settings import NotificationSettings
    from notification_service.features.notifications.events import OutboundEvent
    from notification_service.features.notifications.models import NotificationPreference
    from notification_service.features.notifications.repository import (
        NotificationPreferenceRepository,
        NotificationRepository,
        NotificationTemplateRepository,
    )
    from notification_service.features.notifications.schemas import BulkNotificationRequest
    from notification_service.features.notifications.templates import TemplateRenderer


TEMPLATE_NAMES: dict[str, str] = {
    "user.registered": "welcome_user",
    "session.completed": "session_completion",
    "proctoring.violation": "proctoring_alert",
    "assessment.published": "new_assessment_assigned",
}


def resolve_template_name(event_type: str) -> str:
    """Template name for ``event_type``; unmapped types use dots replaced by underscores."""
    return TEMPLATE_NAMES.get(event_type, event_type.replace(".", "_"))


class EventPublisher(Protocol):
    async def publish(self, event_type: str, payload: Mapping[str, Any]) -> str | None: ...


@dataclass(frozen=True, slots=True)
class RenderedContent:
    """Rendered template. ``body`` is escaped HTML for email, ``text`` holds plain values."""

    subject: str
    body: str
    text: str

    def content_for(self, channel: str) -> str:
        return self.body if channel == NotificationChannel.EMAIL else self.text


@dataclass(frozen=True, slots=True)
class DeliveryAttempt:
    """Outcome of one channel send, handed to the status-update continuation."""

    notification_id: int
    channel: str
    result: DeliveryResult


@dataclass(frozen=True, slots=True)
class BulkResult:
    total: int
    success: int
    failed: int

    def as_dict(self) -> dict[str, int]:
        return {"total": self.total, "success": self.success, "failed": self.failed}


class NotificationService(BaseService):
    """Creates, dispatches and tracks delivery records.

    Example:
        service = NotificationService(session_factory=get_session_factory())
        await service.process_notification(
            "user.registered", 42, "john@example.com",
            {"firstName": "John"}, ["EMAIL"],
        )
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        channels: ChannelRegistry | None = None,
        dispatcher: DispatchRunner | None = None,
        publisher: EventPublisher | None = None,
        renderer: TemplateRenderer | None = None,
        settings: NotificationSettings | None = None,
        template_repository: NotificationTemplateRepository | None = None,
        preference_repository: NotificationPreferenceRepository | None = None,
        notification_repository: NotificationRepository | None = None,
    ) -> None:
        super().__init__()
        self._settings = settings or get_notification_settings()
        self._session_factory = session_factory
        self._channels = channels or ChannelRegistry.default()
        self._dispatcher = dispatcher or DispatchRunner(self._settings.dispatch_concurrency)
        self._publisher = publisher
        self._renderer = renderer or get_template_renderer()
        self._templates = template_repository or get_notification_template_repository()
        self._preferences = preference_repository or get_notification_preference_repository()
        self._notifications = notification_repository or get_notification_repository()
        self._template_cache = TemplateCache(self._settings.template_cache_ttl)

    @property
    def dispatcher(self) -> DispatchRunner:
        return self._dispatcher

    @property
    def max_retry_attempts(self) -> int:
        return self._settings.max_retry_attempts

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def get_template(self, name: str) -> TemplateSnapshot | None:
        """Cached template lookup by name."""
        snapshot = self._template_cache.get(name)
        if snapshot is not None:
            return snapshot
        async with self._session_factory() as session:
            template = await self._templates.find_by_name(session, name)
        if template is None:
            return None
        snapshot = TemplateSnapshot.from_model(template)
        self._template_cache.put(snapshot)
        return snapshot

    async def require_template(self, name: str, event_type: str | None = None) -> TemplateSnapshot:
        """Like ``get_template`` but a missing template is an error.

        Raises:
            TemplateNotFoundError: If no template is registered under ``name``.
        """
        snapshot = await self.get_template(name)
        if snapshot is None:
            raise TemplateNotFoundError(name, event_type)
        return snapshot

    def invalidate_templates(self, name: str | None = None) -> None:
        self._template_cache.invalidate(name)

    def render(self, template: TemplateSnapshot, variables: Mapping[str, Any]) -> RenderedContent:
        """Render subject and body; missing variables are logged, not fatal.

        Raises:
            TemplateRenderError: If a variable value cannot be rendered.
        """
        missing = sorted(
            set(self._renderer.missing_variables(template.body, variables))
            | set(self._renderer.missing_variables(template.subject, variables))
        )
        if missing:
            self.logger.warning(
                "Missing template variables",
                extra={"template": template.name, "missing_vars": missing},
            )
        return RenderedContent(
            subject=self._renderer.render_subject(template.subject, variables),
            body=self._renderer.render_body(template.body, variables),
            text=self._renderer.render_text(template.body, variables),
        )

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def process_notification(
        self,
        event_type: str,
        recipient_id: int,
        recipient_email: str | None,
        variables: Mapping[str, Any],
        channels: Sequence[str],
    ) -> list[int]:
        """Render, filter by preference, record and dispatch one notification.

        Returns:
            Ids of the delivery records created. Empty when the template is
            missing or every channel is disabled.
        """
        self.logger.info(
            "Processing notification",
            extra={
                "event_type": event_type,
                "recipient_id": recipient_id,
                "channels": [str(c) for c in channels],
            },
        )
        template_name = resolve_template_name(event_type)
        try:
            template = await self.require_template(template_name, event_type)
            return await self._deliver_to_recipient(
                template, event_type, recipient_id, recipient_email, variables, channels
            )
        except TemplateNotFoundError:
            self.logger.error(
                "Template not found for event type",
                extra={"event_type": event_type, "template": template_name},
            )
            notification_template_missing_total.labels(template=template_name).inc()
            return []
        except TemplateRenderError:
            self.logger.exception(
                "Template could not be rendered",
                extra={"event_type": event_type, "template": template_name},
            )
            return []

    async def process_bulk_notification(self, request: BulkNotificationRequest) -> BulkResult:
        """Deliver one notification type to many users.

        Per-user values override ``common_data``. A failure for one user is
        counted and does not stop the batch.
        """
        batch_id = str(uuid4())
        total = len(request.user_ids)
        self.logger.info(
            "Processing bulk notification",
            extra={"batch_id": batch_id, "recipients": total, "notification_type": request.type},
        )

        template_name = resolve_template_name(request.type)
        try:
            template = await self.require_template(template_name, request.type)
        except TemplateNotFoundError:
            self.logger.error(
                "Template not found for bulk notification",
                extra={"batch_id": batch_id, "notification_type": request.type, "template": template_name},
            )
            notification_template_missing_total.labels(template=template_name).inc()
            return BulkResult(total=total, success=0, failed=total)

        success = failed = 0
        for user_id in request.user_ids:
            variables: dict[str, Any] = {**request.common_data, **request.user_specific_data.get(user_id, {})}
            email = variables.get("email")
            try:
                await self._deliver_to_recipient(
                    template,
                    request.type,
                    user_id,
                    str(email) if email is not None else None,
                    variables,
                    request.channels,
                )
            except Exception:
                self.logger.exception(
                    "Failed to process bulk notification for user",
                    extra={"batch_id": batch_id, "recipient_id": user_id},
                )
                failed += 1
            else:
                success += 1

        result = BulkResult(total=total, success=success, failed=failed)
        notification_bulk_batches_total.labels(notification_type=request.type).inc()
        notification_bulk_recipients_total.labels(outcome="success").inc(success)
        notification_bulk_recipients_total.labels(outcome="failed").inc(failed)
        await self._publish(
            BulkNotificationCompletedEvent(
                batch_id=batch_id,
                total_recipients=total,
                successful_sent=success,
                failed_sent=failed,
                notification_type=request.type,
            )
        )
        self.logger.info(
            "Bulk notification completed",
            extra={"batch_id": batch_id, **result.as_dict()},
        )
        return result

    async def _deliver_to_recipient(
        self,
        template: TemplateSnapshot,
        event_type: str,
        recipient_id: int,
        recipient_email: str | None,
        variables: Mapping[str, Any],
        channels: Iterable[str],
    ) -> list[int]:
        content = self.render(template, variables)
        async with self._session_factory() as session:
            preference = await self._preferences.find_by_user(session, recipient_id)
            records = self._build_records(
                template, event_type, recipient_id, recipient_email, content, channels, preference
            )
            session.add_all(records)
            await session.commit()

        ids = [record.id for record in records]
        for record in records:
            notification_created_total.labels(notification_type=event_type, channel=record.channel).inc()
        for notification_id in ids:
            self.send_notification(notification_id)
        return ids

    def _build_records(
        self,
        template: TemplateSnapshot,
        event_type: str,
        recipient_id: int,
        recipient_email: str | None,
        content: RenderedContent,
        channels: Iterable[str],
        preference: NotificationPreference | None,
    ) -> list[Notification]:
        records: list[Notification] = []
        for channel in channels:
            if preference is not None and not preference.allows(channel):
                self.logger.info(
                    "Skipping channel due to user preferences",
                    extra={"recipient_id": recipient_id, "channel": str(channel)},
                )
                notification_skipped_total.labels(channel=str(channel)).inc()
                continue
            records.append(
                Notification(
                    recipient_id=recipient_id,
                    recipient_email=recipient_email,
                    type=event_type,
                    channel=str(channel),
                    subject=content.subject,
                    content=content.content_for(str(channel)),
                    template_id=template.id,
                    status=NotificationStatus.PENDING,
                    retry_count=0,
                )
            )
        return records

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def send_notification(self, notification_id: int) -> bool:
        """Queue one delivery attempt for a record.

        Returns:
            False when an attempt for the record is already in flight.
        """
        return self._dispatcher.submit(
            notification_id,
            partial(self._attempt_delivery, notification_id),
            self._record_outcome,
        )

    async def deliver_now(self, notification_id: int) -> DeliveryAttempt | None:
        """Run one attempt inline under the record's lock and apply its outcome."""
        async with self._dispatcher.locked(notification_id):
            attempt = await self._attempt_delivery(notification_id)
            await self._record_outcome(attempt)
        return attempt

    async def _attempt_delivery(self, notification_id: int) -> DeliveryAttempt | None:
        async with self._session_factory() as session:
            record = await self._notifications.get(session, notification_id)
        if record is None:
            self.logger.warning("Notification record not found", extra={"notification_id": notification_id})
            return None
        if record.status != NotificationStatus.PENDING or record.retry_count >= self.max_retry_attempts:
            self._lazy.debug(lambda: f"Skipping notification {notification_id} in status {record.status}")
            return None

        self.logger.info(
            "Sending notification",
            extra={"notification_id": notification_id, "channel": record.channel, "attempt": record.retry_count + 1},
        )
        request = DeliveryRequest.from_record(record)
        start = time.perf_counter()
        try:
            sender = self._channels.get(record.channel)
            result = await sender.send(request)
        except KeyError:
            result = DeliveryResult.failed(f"Unsupported channel: {record.channel}", retryable=False)
        except Exception as exc:
            self.logger.exception(
                "Error sending notification",
                extra={"notification_id": notification_id, "channel": record.channel},
            )
            result = DeliveryResult.failed(str(exc) or type(exc).__name__)
        finally:
            notification_delivery_duration_seconds.labels(channel=record.channel).observe(
                time.perf_counter() - start
            )
        return DeliveryAttempt(notification_id=notification_id, channel=record.channel, result=result)

    async def _record_outcome(self, attempt: DeliveryAttempt | None) -> None:
        if attempt is None:
            return
        if attempt.result.success:
            await self._mark_sent(attempt.notification_id)
        else:
            await self.handle_failed_notification(
                attempt.notification_id,
                attempt.result.error or "Unknown error",
                retryable=attempt.result.retryable,
            )

    async def _mark_sent(self, notification_id: int) -> None:
        async with self._session_factory() as session:
            record = await self._notifications.get(session, notification_id)
            if record is None or record.status != NotificationStatus.PENDING:
                return
            record.status = NotificationStatus.SENT
            record.sent_at = datetime.now(UTC)
            record.error_message = None
            await session.commit()
            event = NotificationSentEvent(
                notification_id=record.id,
                recipient_id=record.recipient_id,
                channel=record.channel,
                type=record.type,
                delivery_time=record.sent_at.isoformat(),
            )
            channel = record.channel

        notification_delivery_total.labels(channel=channel, status="sent").inc()
        self.logger.info("Notification sent", extra={"notification_id": notification_id, "channel": channel})
        await self._publish(event)

    async def handle_failed_notification(
        self, notification_id: int, error_message: str, *, retryable: bool = True
    ) -> bool | None:
        """Record a failed attempt.

        The record stays PENDING while ``retry_count`` is below the ceiling and
        becomes FAILED once it is reached. A non-retryable failure is FAILED at once.

        Returns:
            Whether the record will be retried, or None if it does not exist.
        """
        async with self._session_factory() as session:
            record = await self._notifications.get(session, notification_id)
            if record is None:
                return None
            record.error_message = error_message
            record.retry_count += 1
            will_retry = retryable and record.retry_count < self.max_retry_attempts
            if not will_retry:
                record.status = NotificationStatus.FAILED
            await session.commit()
            event = NotificationFailedEvent(
                notification_id=record.id,
                recipient_id=record.recipient_id,
                channel=record.channel,
                error_message=error_message,
                retry_count=record.retry_count,
                will_retry=will_retry,
            )
            channel = record.channel
            retry_count = record.retry_count

        if will_retry:
            self.logger.info(
                "Notification will be retried",
                extra={"notification_id": notification_id, "retry_count": retry_count, "error": error_message},
            )
        else:
            self.logger.error(
                "Notification permanently failed",
                extra={"notification_id": notification_id, "retry_count": retry_count, "error": error_message},
            )
        notification_delivery_total.labels(channel=channel, status="retry" if will_retry else "failed").inc()
        await self._publish(event)
        return will_retry

    async def retry_pending(self) -> int:
        """Resubmit every PENDING record below the retry ceiling.

        Returns:
            Number of records submitted.
        """
        async with self._session_factory() as session:
            records = await self._notifications.find_by_status_and_retry_below(
                session, NotificationStatus.PENDING, self.max_retry_attempts
            )
            candidates = [(record.id, record.channel) for record in records]

        submitted = 0
        for notification_id, channel in candidates:
            if self.send_notification(notification_id):
                submitted += 1
                notification_retry_total.labels(channel=channel).inc()
        if submitted:
            self.logger.info("Retrying pending notifications", extra={"count": submitted})
        return submitted

    async def _publish(self, event: OutboundEvent) -> None:
        if self._publisher is None:
            self._lazy.debug(lambda: f"No publisher configured; dropping {event.event_type}")
            return
        await self._publisher.publish(event.event_type, event.to_payload())

    async def shutdown(self) -> int:
        """Stop accepting work and wait up to ``shutdown_timeout`` for in-flight sends."""
        return await self._dispatcher.drain(timeout=self._settings.shutdown_timeout)


# Global service instance
_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """Get the global notification service.

    Raises:
        RuntimeError: If the service has not been started
    """
    if _service is None:
        raise RuntimeError("Notification service not initialized; the orchestrator lifespan hook has not run")
    return _service


def set_notification_service(service: NotificationService | None) -> None:
    global _service
    _service = service
