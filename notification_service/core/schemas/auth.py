"""Authenticated caller schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CallerIdentity(BaseModel):
    """Identity resolved from a bearer token.

    Roles are upper case without a ``ROLE_`` prefix (``ADMIN``, ``STAFF``).
    """

    model_config = ConfigDict(frozen=True)

    user_id: int = Field(description="Numeric user id")
    username: str | None = None
    email: str | None = None
    roles: frozenset[str] = Field(default_factory=frozenset)
    is_admin: bool = False

    def has_role(self, role: str) -> bool:
        return role.upper().removeprefix("ROLE_") in self.roles

    def can_access_user(self, user_id: int) -> bool:
        """Owner-or-admin check for per-user resources."""
        return self.is_admin or self.user_id == user_id
