"""HTTP-facing exceptions.

Each subclass fixes a status code, a problem ``type`` slug and a title;
``app.exception_handlers`` renders them as RFC 7807 Problem Details.
"""

from __future__ import annotations

from typing import Any, ClassVar


class AppException(Exception):
    """Base for errors that become a problem response.

    Example:
        raise NotFoundException(
            detail="No notification preferences for user 42",
            extra={"userId": 42},
        )
    """

    status_code: ClassVar[int] = 500
    default_type: ClassVar[str] = "about:blank"
    title: ClassVar[str] = "Internal Server Error"

    def __init__(
        self,
        detail: str,
        type: str | None = None,  # noqa: A002
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail
        self.type = type or self.default_type
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)


class NotFoundException(AppException):
    status_code = 404
    default_type = "not-found"
    title = "Not Found"


class ConflictException(AppException):
    status_code = 409
    default_type = "conflict"
    title = "Conflict"


class UnauthorizedException(AppException):
    status_code = 401
    default_type = "unauthorized"
    title = "Unauthorized"


class ForbiddenException(AppException):
    status_code = 403
    default_type = "forbidden"
    title = "Forbidden"


class ServiceUnavailableException(AppException):
    """A backing component (database, Redis, push registry) is not running."""

    status_code = 503
    default_type = "service-unavailable"
    title = "Service Unavailable"


# Authentication


class MissingAuthenticationError(UnauthorizedException):
    default_type = "missing-authentication"

    def __init__(self, detail: str = "Authentication credentials required") -> None:
        super().__init__(detail)


class TokenExpiredError(UnauthorizedException):
    default_type = "token-expired"

    def __init__(self, detail: str = "Token has expired") -> None:
        super().__init__(detail)


class TokenInvalidError(UnauthorizedException):
    """Bad signature, wrong audience or issuer, or no usable user id."""

    default_type = "token-invalid"

    def __init__(self, detail: str = "Invalid token") -> None:
        super().__init__(detail)


class InsufficientPermissionsError(ForbiddenException):
    """The caller is neither the resource owner nor an admin."""

    default_type = "insufficient-permissions"

    def __init__(self, required_role: str | None = None, detail: str | None = None) -> None:
        if detail is None:
            detail = f"Missing required role: {required_role}" if required_role else "Insufficient permissions"
        super().__init__(detail, extra={"requiredRole": required_role} if required_role else None)
