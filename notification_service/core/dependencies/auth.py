"""Bearer-token authentication dependencies.

Tokens are JWTs issued by the external identity provider and verified locally
with python-jose. The token is read from the ``Authorization: Bearer`` header
or, for EventSource clients that cannot set headers, the ``token`` query
parameter.

Example:
    from notification_service.core.dependencies.auth import AuthUserDep, require_self_or_admin

    @router.get("/users/{user_id}/preferences")
    async def get_preferences(user_id: int, caller: AuthUserDep):
        require_self_or_admin(caller, user_id)
        ...
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from notification_service.core.exceptions import (
    InsufficientPermissionsError,
    MissingAuthenticationError,
    ServiceUnavailableException,
    TokenExpiredError,
    TokenInvalidError,
)
from notification_service.core.schemas.auth import CallerIdentity
from notification_service.core.settings import AuthSettings, get_auth_settings

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

_ROLE_CLAIMS = ("roles", "groups", "role", "tag")
_USER_ID_PREFIX = "user_"


def decode_token(token: str, settings: AuthSettings) -> dict[str, Any]:
    """Verify the signature and standard claims of ``token``.

    Raises:
        ServiceUnavailableException: If no verification key is configured.
        TokenExpiredError: If the token has expired.
        TokenInvalidError: If the token fails verification.
    """
    key = settings.verification_key
    if key is None:
        raise ServiceUnavailableException("Token verification is not configured")

    options = {
        "verify_aud": settings.audience is not None,
        "verify_iss": settings.issuer is not None,
        "leeway": settings.leeway,
    }
    try:
        return jwt.decode(
            token,
            key,
            algorithms=settings.jwt_algorithms,
            audience=settings.audience,
            issuer=settings.issuer,
            options=options,
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError() from e
    except JWTError as e:
        logger.warning("JWT token validation failed", extra={"error": str(e), "error_type": type(e).__name__})
        raise TokenInvalidError() from e


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


def extract_user_id(claims: dict[str, Any]) -> int | None:
    """Numeric user id from ``id``, ``userId`` or ``sub``.

    A subject of the form ``org/user_123`` yields 123.
    """
    for claim in ("id", "userId"):
        user_id = _as_int(claims.get(claim))
        if user_id is not None:
            return user_id

    sub = claims.get("sub")
    if not isinstance(sub, str):
        return _as_int(sub)
    if "/" in sub:
        last = sub.rsplit("/", 1)[-1]
        if last.startswith(_USER_ID_PREFIX):
            user_id = _as_int(last.removeprefix(_USER_ID_PREFIX))
            if user_id is not None:
                return user_id
    return _as_int(sub)


def extract_roles(claims: dict[str, Any]) -> frozenset[str]:
    """Roles from the first non-empty of ``roles``, ``groups``, ``role`` and ``tag``."""
    for claim in _ROLE_CLAIMS:
        value = claims.get(claim)
        if not value:
            continue
        raw = [value] if isinstance(value, str) else list(value)
        roles = frozenset(str(role).upper().removeprefix("ROLE_") for role in raw if role)
        if roles:
            return roles
    return frozenset()


def extract_username(claims: dict[str, Any]) -> str | None:
    for claim in ("name", "preferred_username", "user"):
        if claims.get(claim):
            return str(claims[claim])
    sub = claims.get("sub")
    if isinstance(sub, str) and "/" in sub:
        return sub.split("/")[1]
    return sub


def identity_from_claims(claims: dict[str, Any], settings: AuthSettings) -> CallerIdentity:
    """Build the caller identity from verified claims.

    Raises:
        TokenInvalidError: If no numeric user id can be derived.
    """
    user_id = extract_user_id(claims)
    if user_id is None:
        raise TokenInvalidError("Token does not identify a user")
    roles = extract_roles(claims)
    is_admin = claims.get("isAdmin") is True or bool(roles & set(settings.admin_roles))
    return CallerIdentity(
        user_id=user_id,
        username=extract_username(claims),
        email=claims.get("email") or claims.get("emailAddress"),
        roles=roles,
        is_admin=is_admin,
    )


async def get_auth_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
    token: Annotated[str | None, Query(description="Bearer token for EventSource clients")] = None,
) -> CallerIdentity:
    """Resolve the authenticated caller.

    Raises:
        MissingAuthenticationError: If no token was presented.
    """
    raw = credentials.credentials if credentials is not None else token
    if not raw:
        raise MissingAuthenticationError()
    settings = get_auth_settings()
    return identity_from_claims(decode_token(raw, settings), settings)


AuthUserDep = Annotated[CallerIdentity, Depends(get_auth_user)]
"""Authenticated caller (required). Raises 401 when the token is missing or invalid."""


async def get_admin_user(caller: AuthUserDep) -> CallerIdentity:
    """Require an admin caller.

    Raises:
        InsufficientPermissionsError: If the caller is not an admin.
    """
    if not caller.is_admin:
        raise InsufficientPermissionsError(required_role="ADMIN")
    return caller


AdminUserDep = Annotated[CallerIdentity, Depends(get_admin_user)]


def require_self_or_admin(caller: CallerIdentity, user_id: int) -> None:
    """Raise 403 unless ``caller`` is ``user_id`` or an admin."""
    if not caller.can_access_user(user_id):
        logger.info(
            "Access denied to another user's resource",
            extra={"caller_id": caller.user_id, "target_user_id": user_id},
        )
        raise InsufficientPermissionsError(detail="Access to another user's resource requires an admin role")
