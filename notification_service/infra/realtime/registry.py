"""Registry of live server-sent event connections.

Each connection owns a bounded outbound queue that the HTTP response drains.
Writing to a connection means enqueueing a frame; a closed connection or a
full queue is a failed write, and the connection is removed. All index
mutations happen under one lock and every fan-out iterates a snapshot, so
removal is safe while deliveries are in flight.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import defaultdict
from dataclasses import dataclass, field
import json
import logging
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from notification_service.core.settings import get_realtime_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from notification_service.core.settings import RealtimeSettings

logger = logging.getLogger(__name__)

CONNECT_EVENT = "connect"
HEARTBEAT_EVENT = "heartbeat"


def _encode(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, default=str)


@dataclass(eq=False)
class PushConnection:
    """One open event stream for a user, optionally tagged with a topic."""

    user_id: int
    queue_size: int
    topic: str | None = None
    connection_id: str = field(default_factory=lambda: str(uuid4()))
    connected_at: float = field(default_factory=time.time)
    last_heartbeat_at: float = field(default_factory=time.time)
    closed: bool = False

    def __post_init__(self) -> None:
        self._queue: asyncio.Queue[dict[str, str] | None] = asyncio.Queue(maxsize=self.queue_size)

    def offer(self, event_type: str, payload: Any) -> bool:
        """Enqueue a frame without waiting; False if the connection cannot take it."""
        if self.closed:
            return False
        frame = {"event": event_type, "id": str(uuid4()), "data": _encode(payload)}
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> bool:
        """Mark closed and wake the reader. Returns False if already closed."""
        if self.closed:
            return False
        self.closed = True
        # Make room for the end-of-stream marker
        while True:
            try:
                self._queue.put_nowait(None)
                break
            except asyncio.QueueFull:
                with contextlib.suppress(asyncio.QueueEmpty):
                    self._queue.get_nowait()
        return True

    async def frames(self) -> AsyncIterator[dict[str, str]]:
        """Yield queued frames until the connection is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class PushConnectionRegistry:
    """Tracks live connections by user and by topic.

    Example:
        registry = PushConnectionRegistry()
        await registry.start()

        connection = await registry.create_connection_for_user(42)
        try:
            async for frame in connection.frames():
                ...
        finally:
            await registry.remove(connection)
    """

    def __init__(self, settings: RealtimeSettings | None = None) -> None:
        self._settings = settings or get_realtime_settings()
        # connection_id -> PushConnection
        self._connections: dict[str, PushConnection] = {}
        # user_id -> connection_ids
        self._user_connections: dict[int, set[str]] = defaultdict(set)
        # topic -> connection_ids
        self._topic_connections: dict[str, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._running = False
        self._heartbeat_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the heartbeat task."""
        if self._running:
            return
        self._running = True
        if self._settings.heartbeat_interval > 0:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
            logger.debug(
                "Heartbeat task started",
                extra={"interval": self._settings.heartbeat_interval},
            )
        logger.info("Push connection registry started")

    async def stop(self) -> None:
        """Stop heartbeats and close every connection."""
        self._running = False

        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self._heartbeat_task = None

        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._user_connections.clear()
            self._topic_connections.clear()

        for connection in connections:
            connection.close()
        self._update_connection_metrics()

        logger.info("Push connection registry stopped", extra={"connections_closed": len(connections)})

    async def create_connection_for_user(self, user_id: int) -> PushConnection:
        """Register a new unicast connection and send the initial ``connect`` event."""
        connection = await self._register(user_id, topic=None)
        connection.offer(
            CONNECT_EVENT,
            {"message": "Connected successfully", "userId": user_id, "connectionId": connection.connection_id},
        )
        return connection

    async def subscribe_to_topic(self, topic: str, user_id: int) -> PushConnection:
        """Register a connection that also receives broadcasts for ``topic``."""
        connection = await self._register(user_id, topic=topic)
        connection.offer(
            CONNECT_EVENT,
            {"message": f"Subscribed to topic: {topic}", "userId": user_id, "topic": topic},
        )
        return connection

    async def send_to_user(self, user_id: int, event_type: str, payload: Any) -> bool:
        """Write one frame to every connection of ``user_id``.

        Returns:
            True iff at least one connection accepted the write.
        """
        delivered = 0
        for connection in self._snapshot_user(user_id):
            if connection.offer(event_type, payload):
                delivered += 1
            else:
                logger.info(
                    "Dropping push connection after failed write",
                    extra={"user_id": user_id, "connection_id": connection.connection_id},
                )
                await self.remove(connection)

        logger.debug(
            "Push event sent to user",
            extra={"user_id": user_id, "event_type": event_type, "connections": delivered},
        )
        return delivered > 0

    async def broadcast_to_topic(self, topic: str, event_type: str, payload: Any) -> int:
        """Best-effort write to every connection subscribed to ``topic``.

        Returns:
            Number of connections that accepted the frame.
        """
        delivered = 0
        for connection in self._snapshot_topic(topic):
            if connection.offer(event_type, payload):
                delivered += 1
            else:
                await self.remove(connection)
        logger.debug(
            "Broadcast to topic",
            extra={"topic": topic, "event_type": event_type, "connections": delivered},
        )
        return delivered

    async def disconnect_user(self, user_id: int) -> int:
        """Close and remove all of ``user_id``'s connections."""
        async with self._lock:
            ids = self._user_connections.pop(user_id, set())
            connections = [self._pop_locked(cid) for cid in ids]
        closed = sum(1 for connection in connections if connection is not None and connection.close())
        self._update_connection_metrics()
        logger.info("User disconnected from push", extra={"user_id": user_id, "connections_closed": closed})
        return closed

    async def remove(self, connection: PushConnection) -> bool:
        """Remove and close ``connection``. Safe to call more than once."""
        async with self._lock:
            removed = self._pop_locked(connection.connection_id)
        connection.close()
        if removed is None:
            return False
        self._update_connection_metrics()
        logger.info(
            "Push connection removed",
            extra={
                "connection_id": connection.connection_id,
                "user_id": connection.user_id,
                "duration_seconds": round(time.time() - connection.connected_at, 3),
            },
        )
        return True

    def is_user_connected(self, user_id: int) -> bool:
        return bool(self._user_connections.get(user_id))

    @property
    def active_user_count(self) -> int:
        return sum(1 for ids in self._user_connections.values() if ids)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def stats(self) -> dict[str, Any]:
        return {
            "activeUserConnections": self.active_user_count,
            "activeConnections": self.connection_count,
            "topics": {topic: len(ids) for topic, ids in self._topic_connections.items()},
        }

    # Private methods

    async def _register(self, user_id: int, topic: str | None) -> PushConnection:
        connection = PushConnection(user_id=user_id, topic=topic, queue_size=self._settings.queue_size)
        evicted: list[PushConnection] = []
        async with self._lock:
            user_ids = self._user_connections[user_id]
            while len(user_ids) >= self._settings.max_connections_per_user:
                oldest_id = min(user_ids, key=lambda cid: self._connections[cid].connected_at)
                oldest = self._pop_locked(oldest_id)
                if oldest is not None:
                    evicted.append(oldest)
            self._connections[connection.connection_id] = connection
            self._user_connections[user_id].add(connection.connection_id)
            if topic is not None:
                self._topic_connections[topic].add(connection.connection_id)

        for old in evicted:
            old.close()
            logger.info(
                "Evicted oldest push connection",
                extra={"user_id": user_id, "connection_id": old.connection_id},
            )
        self._update_connection_metrics()
        logger.info(
            "Push connection opened",
            extra={
                "connection_id": connection.connection_id,
                "user_id": user_id,
                "topic": topic,
                "total_connections": len(self._connections),
            },
        )
        return connection

    def _pop_locked(self, connection_id: str) -> PushConnection | None:
        """Drop a connection from every index. Caller holds the lock."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        user_ids = self._user_connections.get(connection.user_id)
        if user_ids is not None:
            user_ids.discard(connection_id)
            if not user_ids:
                del self._user_connections[connection.user_id]
        if connection.topic is not None:
            topic_ids = self._topic_connections.get(connection.topic)
            if topic_ids is not None:
                topic_ids.discard(connection_id)
                if not topic_ids:
                    del self._topic_connections[connection.topic]
        return connection

    def _snapshot_user(self, user_id: int) -> list[PushConnection]:
        ids = list(self._user_connections.get(user_id, ()))
        return [self._connections[cid] for cid in ids if cid in self._connections]

    def _snapshot_topic(self, topic: str) -> list[PushConnection]:
        ids = list(self._topic_connections.get(topic, ()))
        return [self._connections[cid] for cid in ids if cid in self._connections]

    async def heartbeat_once(self) -> int:
        """Send one heartbeat frame everywhere; returns the number of dead connections removed."""
        now = time.time()
        dead = 0
        for connection in list(self._connections.values()):
            if connection.offer(HEARTBEAT_EVENT, {"timestamp": int(now * 1000)}):
                connection.last_heartbeat_at = now
            else:
                dead += 1
                await self.remove(connection)
        if dead:
            logger.info("Removed dead push connections", extra={"count": dead})
        return dead

    async def _heartbeat_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.heartbeat_interval)
            try:
                await self.heartbeat_once()
            except Exception:
                logger.exception("Heartbeat sweep failed")

    def _update_connection_metrics(self) -> None:
        from notification_service.infra.metrics.prometheus import (
            push_active_users,
            push_connections_active,
        )

        push_connections_active.set(len(self._connections))
        push_active_users.set(self.active_user_count)


# Global registry instance
_registry: PushConnectionRegistry | None = None


def get_push_registry() -> PushConnectionRegistry:
    """Get the global push connection registry.

    Raises:
        RuntimeError: If the registry has not been started
    """
    if _registry is None:
        raise RuntimeError("Push registry not initialized. Call start_push_registry() first.")
    return _registry


async def start_push_registry(settings: RealtimeSettings | None = None) -> PushConnectionRegistry:
    """Create and start the global registry."""
    global _registry
    if _registry is None:
        _registry = PushConnectionRegistry(settings)
        await _registry.start()
    return _registry


async def stop_push_registry() -> None:
    """Stop and forget the global registry."""
    global _registry
    if _registry is not None:
        await _registry.stop()
        _registry = None
