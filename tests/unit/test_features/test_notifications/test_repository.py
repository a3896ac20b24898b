"""Tests for the notifications repositories."""

from __future__ import annotations

import pytest

from notification_service.features.notifications.models import (
    Notification,
    NotificationPreference,
    NotificationStatus,
)
from notification_service.features.notifications.repository import (
    NotificationPreferenceRepository,
    NotificationRepository,
    NotificationTemplateRepository,
    get_notification_repository,
)


def _record(recipient_id: int = 42, status: NotificationStatus = NotificationStatus.PENDING, retry_count: int = 0):
    return Notification(
        recipient_id=recipient_id,
        type="user.registered",
        channel="EMAIL",
        content="body",
        status=status,
        retry_count=retry_count,
    )


class TestNotificationRepository:
    """Test delivery record queries."""

    @pytest.mark.asyncio
    async def test_retry_candidates_below_ceiling(self, db_session) -> None:
        repo = NotificationRepository()
        eligible = [_record(retry_count=0), _record(retry_count=2)]
        db_session.add_all(
            [
                *eligible,
                _record(retry_count=3),
                _record(status=NotificationStatus.SENT),
                _record(status=NotificationStatus.FAILED, retry_count=1),
            ]
        )
        await db_session.flush()

        found = await repo.find_by_status_and_retry_below(db_session, NotificationStatus.PENDING, 3)

        assert sorted(n.id for n in found) == sorted(n.id for n in eligible)

    @pytest.mark.asyncio
    async def test_retry_candidates_limit(self, db_session) -> None:
        repo = NotificationRepository()
        db_session.add_all([_record() for _ in range(4)])
        await db_session.flush()

        found = await repo.find_by_status_and_retry_below(db_session, NotificationStatus.PENDING, 3, limit=2)

        assert len(found) == 2

    @pytest.mark.asyncio
    async def test_list_for_recipient(self, db_session) -> None:
        repo = NotificationRepository()
        db_session.add_all([_record(), _record(status=NotificationStatus.SENT), _record(recipient_id=7)])
        await db_session.flush()

        everything = await repo.list_for_recipient(db_session, 42)
        sent = await repo.list_for_recipient(db_session, 42, status=NotificationStatus.SENT)

        assert everything.total == 2
        assert {n.recipient_id for n in everything.items} == {42}
        assert sent.total == 1
        assert sent.items[0].status == NotificationStatus.SENT

    @pytest.mark.asyncio
    async def test_get_by_primary_key(self, db_session) -> None:
        repo = NotificationRepository()
        record = await repo.create(db_session, _record())

        assert (await repo.get(db_session, record.id)).id == record.id
        assert await repo.get(db_session, 999_999) is None

    def test_singleton_accessor(self) -> None:
        assert get_notification_repository() is get_notification_repository()


class TestPreferenceAndTemplateRepositories:
    """Test lookups by unique key."""

    @pytest.mark.asyncio
    async def test_find_preference_by_user(self, db_session) -> None:
        repo = NotificationPreferenceRepository()
        await repo.create(db_session, NotificationPreference(user_id=42, email_enabled=False))

        found = await repo.find_by_user(db_session, 42)

        assert found is not None
        assert found.allows("EMAIL") is False
        assert found.allows("SSE") is True
        assert await repo.find_by_user(db_session, 7) is None

    @pytest.mark.asyncio
    async def test_find_template_by_name(self, db_session, seeded_templates) -> None:
        repo = NotificationTemplateRepository()

        template = await repo.find_by_name(db_session, "proctoring_alert")

        assert template is not None
        assert "{{violationType}}" in (template.subject or "") + template.body
        assert await repo.find_by_name(db_session, "missing") is None
