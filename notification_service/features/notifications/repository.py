"""Repositories for the notifications feature."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from notification_service.core.database.repository import BaseRepository, SearchResult
from notification_service.features.notifications.models import (
    Notification,
    NotificationPreference,
    NotificationStatus,
    NotificationTemplate,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class NotificationTemplateRepository(BaseRepository[NotificationTemplate]):
    """Lookup of templates by their unique name."""

    def __init__(self) -> None:
        super().__init__(NotificationTemplate)

    async def find_by_name(self, session: AsyncSession, name: str) -> NotificationTemplate | None:
        """Get template by unique name."""
        return await self.get_by(session, NotificationTemplate.name, name)


class NotificationPreferenceRepository(BaseRepository[NotificationPreference]):
    """Per-user channel preferences."""

    def __init__(self) -> None:
        super().__init__(NotificationPreference)

    async def find_by_user(self, session: AsyncSession, user_id: int) -> NotificationPreference | None:
        """Get the preference row for ``user_id``, or None when the user never saved one."""
        return await self.get_by(session, NotificationPreference.user_id, user_id)


class NotificationRepository(BaseRepository[Notification]):
    """Delivery records."""

    def __init__(self) -> None:
        super().__init__(Notification)

    async def find_by_status_and_retry_below(
        self,
        session: AsyncSession,
        status: NotificationStatus,
        max_retry_count: int,
        *,
        limit: int | None = None,
    ) -> Sequence[Notification]:
        """Records in ``status`` whose retry_count is strictly below ``max_retry_count``.

        Ordered oldest first so a bounded sweep makes progress.
        """
        stmt = (
            select(Notification)
            .where(Notification.status == status, Notification.retry_count < max_retry_count)
            .order_by(Notification.created_at, Notification.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        items = result.scalars().all()
        self._log.debug(
            lambda: f"db.find_by_status_and_retry_below({status=}, {max_retry_count=}) -> {len(items)} items"
        )
        return items

    async def list_for_recipient(
        self,
        session: AsyncSession,
        recipient_id: int,
        *,
        status: NotificationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[Notification]:
        """Newest-first delivery history for one user."""
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        if status is not None:
            stmt = stmt.where(Notification.status == status)
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        return await self.search(session, stmt, limit=limit, offset=offset)


_template_repository: NotificationTemplateRepository | None = None
_preference_repository: NotificationPreferenceRepository | None = None
_notification_repository: NotificationRepository | None = None


def get_notification_template_repository() -> NotificationTemplateRepository:
    """Get NotificationTemplateRepository singleton instance."""
    global _template_repository
    if _template_repository is None:
        _template_repository = NotificationTemplateRepository()
    return _template_repository


def get_notification_preference_repository() -> NotificationPreferenceRepository:
    """Get NotificationPreferenceRepository singleton instance."""
    global _preference_repository
    if _preference_repository is None:
        _preference_repository = NotificationPreferenceRepository()
    return _preference_repository


def get_notification_repository() -> NotificationRepository:
    """Get NotificationRepository singleton instance."""
    global _notification_repository
    if _notification_repository is None:
        _notification_repository = NotificationRepository()
    return _notification_repository
