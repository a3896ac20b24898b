"""Tests for the server-sent events API."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import FastAPI
import httpx
import pytest

from notification_service.app.exception_handlers import configure_exception_handlers
from notification_service.core.dependencies import get_auth_user
from notification_service.core.settings import RealtimeSettings
from notification_service.features.realtime.router import _stream, get_registry_dep, router
from notification_service.infra.realtime import PushConnectionRegistry, stop_push_registry

BASE = "/api/v1/sse"


@pytest.fixture
def registry() -> PushConnectionRegistry:
    return PushConnectionRegistry(RealtimeSettings(heartbeat_interval=0))


@pytest.fixture
def app(registry: PushConnectionRegistry) -> FastAPI:
    application = FastAPI()
    configure_exception_handlers(application)
    application.include_router(router, prefix="/api/v1")
    application.dependency_overrides[get_registry_dep] = lambda: registry
    return application


@pytest.fixture
def as_caller(app: FastAPI):
    def apply(caller) -> None:
        app.dependency_overrides[get_auth_user] = lambda: caller

    return apply


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


class TestEventStream:
    """Test the frame generator behind the streaming responses."""

    @pytest.mark.asyncio
    async def test_stream_yields_frames_and_removes_on_close(self, registry: PushConnectionRegistry) -> None:
        connection = await registry.create_connection_for_user(42)
        await registry.send_to_user(42, "session.completed", {"notificationId": 1})
        connection.close()

        frames = [frame async for frame in _stream(registry, connection)]

        assert [f["event"] for f in frames] == ["connect", "session.completed"]
        assert registry.is_user_connected(42) is False

    @pytest.mark.asyncio
    async def test_registry_not_started_is_503(self) -> None:
        from notification_service.core.exceptions import ServiceUnavailableException

        await stop_push_registry()

        with pytest.raises(ServiceUnavailableException):
            get_registry_dep()


class TestAdminEndpoints:
    """Test admin-only test and stats endpoints."""

    @pytest.mark.asyncio
    async def test_send_to_connected_user(self, client, as_caller, admin_caller, registry) -> None:
        connection = await registry.create_connection_for_user(42)
        as_caller(admin_caller)

        response = await client.post(f"{BASE}/test/send-to-user", params={"targetUserId": 42, "message": "hi"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["targetUserId"] == 42
        assert isinstance(body["timestamp"], int)
        assert connection.pending == 2

    @pytest.mark.asyncio
    async def test_send_to_offline_user(self, client, as_caller, admin_caller) -> None:
        as_caller(admin_caller)

        response = await client.post(f"{BASE}/test/send-to-user", params={"targetUserId": 5, "message": "hi"})

        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_broadcast(self, client, as_caller, admin_caller, registry) -> None:
        subscriber = await registry.subscribe_to_topic("proctors", 3)
        as_caller(admin_caller)

        response = await client.post(f"{BASE}/test/broadcast", params={"topic": "proctors", "message": "hello"})

        assert response.status_code == 200
        assert response.json()["topic"] == "proctors"
        assert subscriber.pending == 2

    @pytest.mark.asyncio
    async def test_stats(self, client, as_caller, admin_caller, registry) -> None:
        await registry.create_connection_for_user(1)
        await registry.subscribe_to_topic("proctors", 2)
        as_caller(admin_caller)

        response = await client.get(f"{BASE}/stats")

        assert response.json() == {
            "activeUserConnections": 2,
            "activeConnections": 2,
            "topics": {"proctors": 1},
        }

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client, as_caller, user_caller) -> None:
        as_caller(user_caller)

        response = await client.get(f"{BASE}/stats")

        assert response.status_code == 403


class TestPerUserEndpoints:
    """Test status and disconnect."""

    @pytest.mark.asyncio
    async def test_status_for_self(self, client, as_caller, user_caller, registry) -> None:
        await registry.create_connection_for_user(42)
        as_caller(user_caller)

        response = await client.get(f"{BASE}/status/42")

        assert response.status_code == 200
        assert response.json()["connected"] is True
        assert response.json()["userId"] == 42

    @pytest.mark.asyncio
    async def test_status_for_another_user_forbidden(self, client, as_caller, user_caller) -> None:
        as_caller(user_caller)

        response = await client.get(f"{BASE}/status/7")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_disconnect_self(self, client, as_caller, user_caller, registry) -> None:
        connection = await registry.create_connection_for_user(42)
        as_caller(user_caller)

        response = await client.post(f"{BASE}/disconnect/42")

        assert response.status_code == 200
        assert response.json()["connectionsClosed"] == 1
        assert response.json()["disconnected"] is True
        assert connection.closed is True
