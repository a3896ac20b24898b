"""Tests for Problem Details error responses and application wiring."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import FastAPI
import httpx
from pydantic import BaseModel
import pytest

from notification_service.app.exception_handlers import configure_exception_handlers
from notification_service.core.exceptions import (
    ConflictException,
    NotFoundException,
    TokenExpiredError,
)


class Payload(BaseModel):
    count: int


@pytest.fixture
async def client() -> AsyncGenerator[httpx.AsyncClient]:
    app = FastAPI()
    configure_exception_handlers(app)

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundException(detail="No notification preferences for user 42", extra={"userId": 42})

    @app.get("/conflict")
    async def conflict() -> None:
        raise ConflictException(detail="already exists")

    @app.get("/expired")
    async def expired() -> None:
        raise TokenExpiredError()

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("secret internals")

    @app.post("/validate")
    async def validate(payload: Payload) -> Payload:
        return payload

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


class TestExceptionHandlers:
    """Test error rendering."""

    @pytest.mark.asyncio
    async def test_app_exception_as_problem_details(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/missing")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/problem+json"
        assert response.json() == {
            "type": "not-found",
            "title": "Not Found",
            "status": 404,
            "detail": "No notification preferences for user 42",
            "instance": "/missing",
            "userId": 42,
        }

    @pytest.mark.asyncio
    async def test_conflict(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/conflict")

        assert response.status_code == 409
        assert "www-authenticate" not in response.headers

    @pytest.mark.asyncio
    async def test_unauthorized_sets_challenge_header(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/expired")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["type"] == "token-expired"

    @pytest.mark.asyncio
    async def test_validation_error_lists_fields(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/validate", json={"count": "many"})

        assert response.status_code == 422
        body = response.json()
        assert body["type"] == "validation-error"
        assert body["errors"][0]["field"] == "body.count"

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_details(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/boom")

        assert response.status_code == 500
        assert response.json()["type"] == "internal-error"
        assert "secret internals" not in response.text


class TestCreateApp:
    """Test the application factory."""

    def test_routes_registered(self) -> None:
        from notification_service.app.main import create_app

        paths = {route.path for route in create_app().routes}

        assert {
            "/metrics",
            "/api/v1/health",
            "/api/v1/health/ready",
            "/api/v1/users/{user_id}/preferences",
            "/api/v1/users/{user_id}/notifications",
            "/api/v1/notifications/bulk",
            "/api/v1/sse/connect",
            "/api/v1/sse/subscribe/{topic}",
            "/api/v1/sse/stats",
        } <= paths
