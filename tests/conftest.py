"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off real infrastructure
    - Database Fixtures: file-backed SQLite engine, session factory, seeded templates
    - Delivery Fixtures: stub channel senders, a recording publisher, a service factory
    - Authentication Fixtures: caller identities and signed tokens
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("STREAM_ENABLED", "false")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("AUTH_JWT_ALGORITHMS", "HS256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from notification_service.core.database import Base  # noqa: E402
from notification_service.core.schemas.auth import CallerIdentity  # noqa: E402
from notification_service.core.settings import NotificationSettings  # noqa: E402
from notification_service.features.notifications import models  # noqa: E402, F401
from notification_service.features.notifications.channels import (  # noqa: E402
    ChannelRegistry,
    DeliveryRequest,
    DeliveryResult,
)
from notification_service.features.notifications.dispatch import DispatchRunner  # noqa: E402
from notification_service.features.notifications.models import NotificationChannel  # noqa: E402
from notification_service.features.notifications.templates import seed_default_templates  # noqa: E402
from notification_service.infra.database.session import create_session_factory  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

    from notification_service.features.notifications.service import NotificationService


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Async engine on a SQLite file with every table created.

    A file rather than ``:memory:`` so concurrent sessions see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
async def seeded_templates(session_factory: async_sessionmaker[AsyncSession]) -> list[str]:
    """Insert the four default templates and return their names."""
    async with session_factory() as session:
        names = await seed_default_templates(session)
        await session.commit()
    return names


# ============================================================================
# Delivery Fixtures
# ============================================================================


@dataclass
class StubSender:
    """Channel sender returning scripted results and recording every request."""

    channel: NotificationChannel
    results: list[DeliveryResult] = field(default_factory=list)
    default: DeliveryResult = field(default_factory=DeliveryResult.ok)
    error: Exception | None = None
    requests: list[DeliveryRequest] = field(default_factory=list)

    async def send(self, request: DeliveryRequest) -> DeliveryResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return self.default


@dataclass
class RecordingPublisher:
    """Publisher that keeps every outbound event in memory."""

    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def publish(self, event_type: str, payload: Mapping[str, Any]) -> str | None:
        self.events.append((event_type, dict(payload)))
        return f"{len(self.events)}-0"

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [payload for kind, payload in self.events if kind == event_type]


@pytest.fixture
def email_sender() -> StubSender:
    return StubSender(NotificationChannel.EMAIL)


@pytest.fixture
def sse_sender() -> StubSender:
    return StubSender(NotificationChannel.SSE)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings(max_retry_attempts=3, dispatch_concurrency=1, shutdown_timeout=5.0)


@pytest.fixture
def make_service(
    session_factory: async_sessionmaker[AsyncSession],
    email_sender: StubSender,
    sse_sender: StubSender,
    publisher: RecordingPublisher,
    notification_settings: NotificationSettings,
) -> Callable[..., NotificationService]:
    """Factory for a NotificationService wired to the test database and stubs.

    Keyword arguments override the constructor defaults.
    """
    from notification_service.features.notifications.service import NotificationService

    def factory(**overrides: Any) -> NotificationService:
        kwargs: dict[str, Any] = {
            "session_factory": session_factory,
            "channels": ChannelRegistry([email_sender, sse_sender]),
            "dispatcher": DispatchRunner(notification_settings.dispatch_concurrency),
            "publisher": publisher,
            "settings": notification_settings,
        }
        kwargs.update(overrides)
        return NotificationService(**kwargs)

    return factory


# ============================================================================
# Authentication Fixtures
# ============================================================================


@pytest.fixture
def user_caller() -> CallerIdentity:
    return CallerIdentity(user_id=42, username="jdoe", email="jdoe@example.com", roles=frozenset({"STUDENT"}))


@pytest.fixture
def admin_caller() -> CallerIdentity:
    return CallerIdentity(user_id=1, username="admin", roles=frozenset({"ADMIN"}), is_admin=True)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Sign claims with the test secret."""
    from jose import jwt

    def factory(**claims: Any) -> str:
        return jwt.encode(claims, "test-secret", algorithm="HS256")

    return factory
