"""Server-sent events router.

Endpoints:
- GET /sse/connect: Event stream for the authenticated user
- GET /sse/subscribe/{topic}: Event stream that also receives topic broadcasts
- POST /sse/test/send-to-user: Send a test event to one user (admin)
- POST /sse/test/broadcast: Broadcast a test event to a topic (admin)
- GET /sse/stats: Connection statistics (admin)
- GET /sse/status/{user_id}: Whether a user has a live connection (self or admin)
- POST /sse/disconnect/{user_id}: Close a user's connections (self or admin)

EventSource clients cannot set headers, so every route also accepts the bearer
token as ``?token=``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from notification_service.core.dependencies import AdminUserDep, AuthUserDep, require_self_or_admin
from notification_service.core.exceptions import ServiceUnavailableException
from notification_service.features.realtime.schemas import (
    BroadcastResponse,
    ConnectionStats,
    ConnectionStatusResponse,
    DisconnectResponse,
    SendToUserResponse,
    now_millis,
)
from notification_service.infra.realtime import PushConnectionRegistry, get_push_registry
from notification_service.utils.runtime_dependencies import require_runtime_dependency

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from notification_service.infra.realtime import PushConnection

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sse", tags=["realtime"])


def get_registry_dep() -> PushConnectionRegistry:
    """Resolve the running registry, or 503 when it has not been started."""
    try:
        return get_push_registry()
    except RuntimeError as exc:
        raise ServiceUnavailableException(detail=str(exc)) from exc


RegistryDep = Annotated[PushConnectionRegistry, Depends(get_registry_dep)]

require_runtime_dependency(AdminUserDep, AuthUserDep, RegistryDep)


async def _stream(registry: PushConnectionRegistry, connection: PushConnection) -> AsyncIterator[dict[str, str]]:
    try:
        async for frame in connection.frames():
            yield frame
    finally:
        await registry.remove(connection)


# ============================================================================
# Streams
# ============================================================================


@router.get(
    "/connect",
    summary="Open an event stream",
    description="Stream notifications addressed to the caller. The first event is `connect`; "
    "`heartbeat` events follow at a fixed interval.",
)
async def connect(caller: AuthUserDep, registry: RegistryDep) -> EventSourceResponse:
    connection = await registry.create_connection_for_user(caller.user_id)
    return EventSourceResponse(_stream(registry, connection))


@router.get(
    "/subscribe/{topic}",
    summary="Open an event stream subscribed to a topic",
)
async def subscribe(topic: str, caller: AuthUserDep, registry: RegistryDep) -> EventSourceResponse:
    connection = await registry.subscribe_to_topic(topic, caller.user_id)
    return EventSourceResponse(_stream(registry, connection))


# ============================================================================
# Admin test endpoints
# ============================================================================


@router.post(
    "/test/send-to-user",
    response_model=SendToUserResponse,
    summary="Send a test event to a user",
)
async def send_test_to_user(
    _admin: AdminUserDep,
    registry: RegistryDep,
    target_user_id: Annotated[int, Query(alias="targetUserId")],
    message: Annotated[str, Query()],
) -> SendToUserResponse:
    success = await registry.send_to_user(target_user_id, "test", message)
    logger.info("Test event sent", extra={"target_user_id": target_user_id, "delivered": success})
    return SendToUserResponse(success=success, target_user_id=target_user_id, message=message)


@router.post(
    "/test/broadcast",
    response_model=BroadcastResponse,
    summary="Broadcast a test event to a topic",
)
async def send_test_broadcast(
    _admin: AdminUserDep,
    registry: RegistryDep,
    topic: Annotated[str, Query()],
    message: Annotated[str, Query()],
) -> BroadcastResponse:
    timestamp = now_millis()
    await registry.broadcast_to_topic(
        topic,
        "broadcast",
        {"message": message, "timestamp": timestamp, "topic": topic},
    )
    return BroadcastResponse(success=True, topic=topic, message=message, timestamp=timestamp)


@router.get(
    "/stats",
    response_model=ConnectionStats,
    summary="Connection statistics",
)
async def get_stats(_admin: AdminUserDep, registry: RegistryDep) -> ConnectionStats:
    return ConnectionStats.model_validate(registry.stats())


# ============================================================================
# Per-user
# ============================================================================


@router.get(
    "/status/{user_id}",
    response_model=ConnectionStatusResponse,
    summary="Check whether a user is connected",
)
async def get_connection_status(user_id: int, caller: AuthUserDep, registry: RegistryDep) -> ConnectionStatusResponse:
    require_self_or_admin(caller, user_id)
    return ConnectionStatusResponse(user_id=user_id, connected=registry.is_user_connected(user_id))


@router.post(
    "/disconnect/{user_id}",
    response_model=DisconnectResponse,
    summary="Close every stream a user has open",
)
async def disconnect(user_id: int, caller: AuthUserDep, registry: RegistryDep) -> DisconnectResponse:
    require_self_or_admin(caller, user_id)
    closed = await registry.disconnect_user(user_id)
    return DisconnectResponse(user_id=user_id, connections_closed=closed)
