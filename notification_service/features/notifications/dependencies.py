"""FastAPI dependencies for the notifications feature."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notification_service.core.dependencies import get_db_session
from notification_service.core.exceptions import ServiceUnavailableException
from notification_service.features.notifications.repository import (
    NotificationPreferenceRepository,
    NotificationRepository,
    get_notification_preference_repository,
    get_notification_repository,
)
from notification_service.features.notifications.service import (
    NotificationService,
    get_notification_service,
)


def get_notification_service_dep() -> NotificationService:
    """Resolve the running orchestrator.

    Raises:
        ServiceUnavailableException: If the orchestrator has not been started.
    """
    try:
        return get_notification_service()
    except RuntimeError as exc:
        raise ServiceUnavailableException(detail=str(exc)) from exc


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service_dep)]
PreferenceRepositoryDep = Annotated[
    NotificationPreferenceRepository,
    Depends(get_notification_preference_repository),
]
NotificationRepositoryDep = Annotated[NotificationRepository, Depends(get_notification_repository)]
