"""API router for the notifications feature.

User Endpoints (self or admin):
- GET /users/{user_id}/preferences - Get a user's channel preferences
- PUT /users/{user_id}/preferences - Create or replace preferences
- POST /users/{user_id}/preferences - Create preferences
- GET /users/{user_id}/notifications - Paged delivery history

Admin Endpoints:
- POST /notifications/bulk - Deliver one notification type to many users
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from notification_service.core.dependencies import AuthUserDep, get_admin_user, require_self_or_admin
from notification_service.core.exceptions import ConflictException, NotFoundException
from notification_service.features.notifications.dependencies import (
    NotificationRepositoryDep,
    NotificationServiceDep,
    PreferenceRepositoryDep,
    SessionDep,
)
from notification_service.features.notifications.models import (
    NotificationPreference,
    NotificationStatus,
)
from notification_service.features.notifications.schemas import (
    BulkNotificationRequest,
    BulkNotificationResult,
    NotificationListResponse,
    PreferenceRequest,
    PreferenceResponse,
)
from notification_service.infra.logging import get_lazy_logger
from notification_service.utils.runtime_dependencies import require_runtime_dependency

require_runtime_dependency(
    AuthUserDep,
    NotificationRepositoryDep,
    NotificationServiceDep,
    NotificationStatus,
    PreferenceRepositoryDep,
    SessionDep,
)

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

router = APIRouter(prefix="/users", tags=["notifications"])

admin_router = APIRouter(
    prefix="/notifications",
    tags=["notifications-admin"],
    dependencies=[Depends(get_admin_user)],
)


def _apply(preference: NotificationPreference, payload: PreferenceRequest) -> NotificationPreference:
    preference.email_enabled = payload.email_enabled
    preference.push_enabled = payload.push_enabled
    preference.sse_enabled = payload.sse_enabled
    preference.email_frequency = payload.email_frequency
    preference.categories = dict(payload.categories)
    return preference


# ============================================================================
# Preferences
# ============================================================================


@router.get(
    "/{user_id}/preferences",
    response_model=PreferenceResponse,
    summary="Get notification preferences",
    description="Return the user's channel preferences. 404 when the user never saved any; "
    "in that case every channel is enabled.",
)
async def get_preferences(
    user_id: int,
    caller: AuthUserDep,
    session: SessionDep,
    repo: PreferenceRepositoryDep,
) -> PreferenceResponse:
    require_self_or_admin(caller, user_id)
    preference = await repo.find_by_user(session, user_id)
    if preference is None:
        raise NotFoundException(detail=f"No notification preferences for user {user_id}")
    return PreferenceResponse.model_validate(preference)


@router.put(
    "/{user_id}/preferences",
    response_model=PreferenceResponse,
    summary="Create or replace notification preferences",
)
async def upsert_preferences(
    user_id: int,
    payload: PreferenceRequest,
    caller: AuthUserDep,
    session: SessionDep,
    repo: PreferenceRepositoryDep,
) -> PreferenceResponse:
    """Replace the user's preferences, creating the row when missing."""
    require_self_or_admin(caller, user_id)
    preference = await repo.find_by_user(session, user_id)
    if preference is None:
        preference = await repo.create(session, _apply(NotificationPreference(user_id=user_id), payload))
    else:
        preference = await repo.save(session, _apply(preference, payload))
    await session.commit()
    logger.info("Notification preferences updated", extra={"user_id": user_id})
    return PreferenceResponse.model_validate(preference)


@router.post(
    "/{user_id}/preferences",
    response_model=PreferenceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create notification preferences",
    description="Create the user's preferences. 409 when they already exist; use PUT to replace them.",
)
async def create_preferences(
    user_id: int,
    payload: PreferenceRequest,
    caller: AuthUserDep,
    session: SessionDep,
    repo: PreferenceRepositoryDep,
) -> PreferenceResponse:
    require_self_or_admin(caller, user_id)
    if await repo.find_by_user(session, user_id) is not None:
        raise ConflictException(detail=f"Notification preferences already exist for user {user_id}")
    preference = await repo.create(session, _apply(NotificationPreference(user_id=user_id), payload))
    await session.commit()
    logger.info("Notification preferences created", extra={"user_id": user_id})
    return PreferenceResponse.model_validate(preference)


# ============================================================================
# Delivery history
# ============================================================================


@router.get(
    "/{user_id}/notifications",
    response_model=NotificationListResponse,
    summary="List a user's delivery records",
    description="Newest first. Filter by `status` (PENDING, SENT, DELIVERED, FAILED).",
)
async def list_notifications(
    user_id: int,
    caller: AuthUserDep,
    session: SessionDep,
    repo: NotificationRepositoryDep,
    status_filter: Annotated[NotificationStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> NotificationListResponse:
    require_self_or_admin(caller, user_id)
    result = await repo.list_for_recipient(session, user_id, status=status_filter, limit=limit, offset=offset)
    lazy_logger.debug(lambda: f"list_notifications({user_id=}) -> {len(result.items)}/{result.total}")
    return NotificationListResponse.from_result(result)


# ============================================================================
# Admin
# ============================================================================


@admin_router.post(
    "/bulk",
    response_model=BulkNotificationResult,
    summary="Send a bulk notification",
    description="""
Deliver one notification type to many users.

`userSpecificData` values override `commonData` per user. An `email` key
supplies the address used by the EMAIL channel. Failures for one user are
counted and do not stop the batch; a `bulk.completed` event is published when
the batch finishes.
""",
)
async def send_bulk_notification(
    payload: BulkNotificationRequest,
    service: NotificationServiceDep,
) -> BulkNotificationResult:
    result = await service.process_bulk_notification(payload)
    return BulkNotificationResult(**result.as_dict())
