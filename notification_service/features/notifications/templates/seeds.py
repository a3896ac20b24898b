"""Default templates shipped with the service.

The same definitions are inserted by the initial Alembic migration and by the
startup seed (``NOTIFY_SEED_TEMPLATES``), which only adds missing names and
never overwrites edited templates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from notification_service.features.notifications.models import NotificationTemplate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "welcome_user",
        "type": "email",
        "subject": "Welcome to Our Platform, {{firstName}}!",
        "body": (
            "<html>\n<body>\n"
            "<h2>Welcome {{firstName}} {{lastName}}!</h2>\n"
            "<p>Thank you for registering with us. Your username is: <strong>{{username}}</strong></p>\n"
            "<p>You can now access all features of our platform.</p>\n"
            "<p>Best regards,<br>The Platform Team</p>\n"
            "</body>\n</html>"
        ),
        "variables": {
            "firstName": "string",
            "lastName": "string",
            "username": "string",
            "email": "string",
        },
    },
    {
        "name": "session_completion",
        "type": "email",
        "subject": "Assessment Completed - {{assessmentName}}",
        "body": (
            "<html>\n<body>\n"
            "<h2>Congratulations {{username}}!</h2>\n"
            "<p>You have successfully completed the assessment: <strong>{{assessmentName}}</strong></p>\n"
            "<p>Completion Time: {{completionTime}}</p>\n"
            "<p>Score: {{score}}</p>\n"
            "<p>Status: {{status}}</p>\n"
            "<p>Thank you for your participation.</p>\n"
            "<p>Best regards,<br>The Assessment Team</p>\n"
            "</body>\n</html>"
        ),
        "variables": {
            "username": "string",
            "assessmentName": "string",
            "completionTime": "string",
            "score": "number",
            "status": "string",
        },
    },
    {
        "name": "proctoring_alert",
        "type": "email",
        "subject": "Proctoring Alert - Session {{sessionId}}",
        "body": (
            "<html>\n<body>\n"
            "<h2>Proctoring Violation Detected</h2>\n"
            "<p>A proctoring violation has been detected for session: <strong>{{sessionId}}</strong></p>\n"
            "<p>User: {{username}}</p>\n"
            "<p>Violation Type: {{violationType}}</p>\n"
            "<p>Severity: {{severity}}</p>\n"
            "<p>Timestamp: {{timestamp}}</p>\n"
            "<p>Please review this incident.</p>\n"
            "<p>Best regards,<br>The Proctoring Team</p>\n"
            "</body>\n</html>"
        ),
        "variables": {
            "username": "string",
            "sessionId": "string",
            "violationType": "string",
            "severity": "string",
            "timestamp": "string",
        },
    },
    {
        "name": "new_assessment_assigned",
        "type": "email",
        "subject": "New Assessment Available - {{assessmentName}}",
        "body": (
            "<html>\n<body>\n"
            "<h2>Hello {{username}}!</h2>\n"
            "<p>A new assessment has been assigned to you: <strong>{{assessmentName}}</strong></p>\n"
            "<p>Duration: {{duration}} minutes</p>\n"
            "<p>Due Date: {{dueDate}}</p>\n"
            "<p>Please complete it before the deadline.</p>\n"
            "<p>Best regards,<br>The Assessment Team</p>\n"
            "</body>\n</html>"
        ),
        "variables": {
            "username": "string",
            "assessmentName": "string",
            "duration": "number",
            "dueDate": "string",
        },
    },
]


async def seed_default_templates(session: AsyncSession) -> list[str]:
    """Insert default templates whose names are not present yet.

    Returns:
        Names of the templates that were inserted.
    """
    names = [definition["name"] for definition in DEFAULT_TEMPLATES]
    result = await session.execute(
        select(NotificationTemplate.name).where(NotificationTemplate.name.in_(names))
    )
    existing = set(result.scalars().all())

    inserted: list[str] = []
    for definition in DEFAULT_TEMPLATES:
        if definition["name"] in existing:
            continue
        session.add(NotificationTemplate(**definition))
        inserted.append(definition["name"])

    if inserted:
        await session.flush()
        logger.info("Seeded default notification templates", extra={"templates": inserted})
    return inserted
