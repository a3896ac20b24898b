"""Tests for bearer token authentication."""

from __future__ import annotations

import time

from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt
import pytest

from notification_service.core.dependencies.auth import (
    decode_token,
    extract_roles,
    extract_user_id,
    extract_username,
    get_admin_user,
    get_auth_user,
    identity_from_claims,
    require_self_or_admin,
)
from notification_service.core.exceptions import (
    InsufficientPermissionsError,
    MissingAuthenticationError,
    ServiceUnavailableException,
    TokenExpiredError,
    TokenInvalidError,
)
from notification_service.core.settings import AuthSettings


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(jwt_secret="test-secret", jwt_algorithms="HS256")


class TestDecodeToken:
    """Test signature and expiry verification."""

    def test_valid_token(self, auth_settings: AuthSettings, make_token) -> None:
        claims = decode_token(make_token(sub="42"), auth_settings)

        assert claims["sub"] == "42"

    def test_expired_token(self, auth_settings: AuthSettings, make_token) -> None:
        token = make_token(sub="42", exp=int(time.time()) - 3600)

        with pytest.raises(TokenExpiredError):
            decode_token(token, auth_settings)

    def test_wrong_signature(self, auth_settings: AuthSettings) -> None:
        token = jwt.encode({"sub": "42"}, "another-secret", algorithm="HS256")

        with pytest.raises(TokenInvalidError):
            decode_token(token, auth_settings)

    def test_audience_checked_when_configured(self, make_token) -> None:
        settings = AuthSettings(jwt_secret="test-secret", jwt_algorithms="HS256", audience="notifications")

        with pytest.raises(TokenInvalidError):
            decode_token(make_token(sub="42", aud="billing"), settings)
        assert decode_token(make_token(sub="42", aud="notifications"), settings)["aud"] == "notifications"

    def test_no_key_configured(self, make_token, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AUTH_JWT_SECRET", raising=False)

        with pytest.raises(ServiceUnavailableException):
            decode_token(make_token(sub="42"), AuthSettings())


class TestClaimExtraction:
    """Test identity fields derived from claims."""

    @pytest.mark.parametrize(
        ("claims", "expected"),
        [
            ({"id": 5}, 5),
            ({"userId": "6"}, 6),
            ({"sub": "7"}, 7),
            ({"sub": "acme/user_123"}, 123),
            ({"id": "x", "sub": "8"}, 8),
            ({"sub": "alice"}, None),
            ({"id": True}, None),
            ({}, None),
        ],
    )
    def test_extract_user_id(self, claims: dict, expected: int | None) -> None:
        assert extract_user_id(claims) == expected

    def test_extract_roles_normalizes(self) -> None:
        assert extract_roles({"roles": ["role_admin", "student"]}) == frozenset({"ADMIN", "STUDENT"})
        assert extract_roles({"roles": [], "role": "proctor"}) == frozenset({"PROCTOR"})
        assert extract_roles({}) == frozenset()

    def test_extract_username(self) -> None:
        assert extract_username({"preferred_username": "jdoe", "sub": "1"}) == "jdoe"
        assert extract_username({"sub": "acme/jdoe"}) == "jdoe"

    def test_identity_admin_from_roles(self, auth_settings: AuthSettings) -> None:
        identity = identity_from_claims({"sub": "1", "roles": ["staff"]}, auth_settings)

        assert identity.user_id == 1
        assert identity.is_admin is True

    def test_identity_admin_flag(self, auth_settings: AuthSettings) -> None:
        assert identity_from_claims({"sub": "1", "isAdmin": True}, auth_settings).is_admin is True
        assert identity_from_claims({"sub": "1", "isAdmin": "true"}, auth_settings).is_admin is False

    def test_identity_requires_numeric_user(self, auth_settings: AuthSettings) -> None:
        with pytest.raises(TokenInvalidError):
            identity_from_claims({"sub": "alice"}, auth_settings)


class TestAuthDependencies:
    """Test the FastAPI dependency functions directly."""

    @pytest.mark.asyncio
    async def test_header_token(self, make_token) -> None:
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=make_token(sub="42"))

        caller = await get_auth_user(credentials, None)

        assert caller.user_id == 42

    @pytest.mark.asyncio
    async def test_query_token(self, make_token) -> None:
        caller = await get_auth_user(None, make_token(userId=9, email="u9@example.com"))

        assert caller.user_id == 9
        assert caller.email == "u9@example.com"

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        with pytest.raises(MissingAuthenticationError):
            await get_auth_user(None, None)

    @pytest.mark.asyncio
    async def test_admin_gate(self, user_caller, admin_caller) -> None:
        assert await get_admin_user(admin_caller) is admin_caller
        with pytest.raises(InsufficientPermissionsError):
            await get_admin_user(user_caller)

    def test_require_self_or_admin(self, user_caller, admin_caller) -> None:
        require_self_or_admin(user_caller, 42)
        require_self_or_admin(admin_caller, 42)
        with pytest.raises(InsufficientPermissionsError):
            require_self_or_admin(user_caller, 7)
