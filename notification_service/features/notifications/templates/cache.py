"""Time-bounded cache of template snapshots keyed by name."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from notification_service.features.notifications.models import NotificationTemplate


@dataclass(frozen=True, slots=True)
class TemplateSnapshot:
    """Immutable copy of a template row, safe to share between tasks and sessions."""

    id: int
    name: str
    type: str
    subject: str | None
    body: str
    variables: dict[str, Any] | None = None

    @classmethod
    def from_model(cls, template: NotificationTemplate) -> TemplateSnapshot:
        return cls(
            id=template.id,
            name=template.name,
            type=template.type,
            subject=template.subject,
            body=template.body,
            variables=dict(template.variables) if template.variables else None,
        )


class TemplateCache:
    """Name-keyed snapshot cache with a fixed time-to-live.

    Only hits are cached, so a template added after a failed lookup is picked
    up immediately. A TTL of 0 disables caching.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, TemplateSnapshot]] = {}

    def get(self, name: str) -> TemplateSnapshot | None:
        entry = self._entries.get(name)
        if entry is None:
            return None
        expires_at, snapshot = entry
        if self._clock() >= expires_at:
            self._entries.pop(name, None)
            return None
        return snapshot

    def put(self, snapshot: TemplateSnapshot) -> None:
        if self._ttl <= 0:
            return
        self._entries[snapshot.name] = (self._clock() + self._ttl, snapshot)

    def invalidate(self, name: str | None = None) -> None:
        """Drop one entry, or everything when ``name`` is None."""
        if name is None:
            self._entries.clear()
        else:
            self._entries.pop(name, None)

    def __len__(self) -> int:
        return len(self._entries)
