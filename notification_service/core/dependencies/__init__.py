"""FastAPI dependencies for route handlers."""

from __future__ import annotations

from .auth import AdminUserDep, AuthUserDep, get_admin_user, get_auth_user, require_self_or_admin
from .database import get_db_session

__all__ = [
    "AdminUserDep",
    "AuthUserDep",
    "get_admin_user",
    "get_auth_user",
    "get_db_session",
    "require_self_or_admin",
]
