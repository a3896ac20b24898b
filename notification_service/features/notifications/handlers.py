"""Fan-out of decoded stream events into notifications.

Each inbound event kind maps to its recipients, channels and template
variables. Errors raised by the service propagate so the stream entry stays
unacknowledged and is picked up again by the reclaim job.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any

from notification_service.features.notifications.events import (
    AssessmentPublishedEvent,
    ProctoringViolationEvent,
    SessionCompletedEvent,
    UserRegisteredEvent,
    parse_inbound_event,
)
from notification_service.features.notifications.models import NotificationChannel
from notification_service.infra.logging import set_log_context

if TYPE_CHECKING:
    from notification_service.features.notifications.events import InboundEvent
    from notification_service.features.notifications.service import NotificationService

logger = logging.getLogger(__name__)

EMAIL_ONLY = (NotificationChannel.EMAIL,)
REALTIME_AND_EMAIL = (NotificationChannel.SSE, NotificationChannel.EMAIL)


class NotificationEventHandler:
    """Stream handler that routes typed events to the notification service.

    Example:
        handler = NotificationEventHandler(service)
        consumer = StreamConsumer(redis, settings, handler)
    """

    def __init__(self, service: NotificationService) -> None:
        self._service = service

    async def __call__(self, stream_kind: str, fields: dict[str, str]) -> None:
        event = parse_inbound_event(stream_kind, fields)
        set_log_context(event_type=event.event_type)
        await self.dispatch(event)

    async def dispatch(self, event: InboundEvent) -> None:
        match event:
            case UserRegisteredEvent():
                await self.on_user_registered(event)
            case SessionCompletedEvent():
                await self.on_session_completed(event)
            case AssessmentPublishedEvent():
                await self.on_assessment_published(event)
            case ProctoringViolationEvent():
                await self.on_proctoring_violation(event)
            case _:
                logger.warning("No handler for event", extra={"event_type": event.event_type})

    async def on_user_registered(self, event: UserRegisteredEvent) -> None:
        logger.info("Processing user registration", extra={"user_id": event.user_id})
        variables = {
            "username": event.username,
            "email": event.email,
            "firstName": event.first_name,
            "lastName": event.last_name,
        }
        await self._service.process_notification(
            event.event_type, event.user_id, event.email, variables, EMAIL_ONLY
        )

    async def on_session_completed(self, event: SessionCompletedEvent) -> None:
        logger.info(
            "Processing session completion",
            extra={"session_id": event.session_id, "user_id": event.user_id},
        )
        variables = {
            "username": event.username,
            "assessmentName": event.assessment_name,
            "completionTime": event.completion_time,
            "score": event.score,
            "status": event.status,
        }
        await self._service.process_notification(
            event.event_type, event.user_id, event.email, variables, EMAIL_ONLY
        )

    async def on_assessment_published(self, event: AssessmentPublishedEvent) -> None:
        logger.info(
            "Processing assessment publication",
            extra={"assessment_id": event.assessment_id, "recipients": len(event.assigned_users)},
        )
        for user in event.assigned_users:
            variables: dict[str, Any] = {
                "assessmentName": event.assessment_name,
                "duration": event.duration,
                "dueDate": event.due_date,
                "username": user.username,
            }
            await self._service.process_notification(
                event.event_type, user.user_id, user.email, variables, REALTIME_AND_EMAIL
            )

    async def on_proctoring_violation(self, event: ProctoringViolationEvent) -> None:
        logger.info(
            "Processing proctoring violation",
            extra={"session_id": event.session_id, "violation_type": event.violation_type},
        )
        if not event.proctor_ids:
            logger.warning("No proctors to notify for violation", extra={"session_id": event.session_id})
            return

        timestamp = (event.timestamp or datetime.now(UTC)).isoformat()
        variables = {
            "username": event.username,
            "sessionId": event.session_id,
            "violationType": event.violation_type,
            "timestamp": timestamp,
            "severity": event.severity,
        }
        for proctor_id in event.proctor_ids:
            await self._service.process_notification(
                event.event_type, proctor_id, None, variables, REALTIME_AND_EMAIL
            )
