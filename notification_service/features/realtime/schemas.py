"""Response schemas for the server-sent events API.

Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_millis() -> int:
    return int(time.time() * 1000)


class RealtimeModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendToUserResponse(RealtimeModel):
    success: bool
    target_user_id: int
    message: str
    timestamp: int = Field(default_factory=now_millis)


class BroadcastResponse(RealtimeModel):
    success: bool
    topic: str
    message: str
    timestamp: int = Field(default_factory=now_millis)


class ConnectionStats(RealtimeModel):
    """Registry counts; ``topics`` maps each topic to its subscriber count."""

    active_user_connections: int
    active_connections: int
    topics: dict[str, int] = Field(default_factory=dict)


class ConnectionStatusResponse(RealtimeModel):
    user_id: int
    connected: bool
    timestamp: int = Field(default_factory=now_millis)


class DisconnectResponse(RealtimeModel):
    user_id: int
    disconnected: bool = True
    connections_closed: int = 0
    timestamp: int = Field(default_factory=now_millis)
