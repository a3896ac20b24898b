"""Shared Redis connection used for stream ingestion and publishing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from redis.asyncio import ConnectionPool, Redis

from notification_service.core.settings import get_redis_settings

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from notification_service.core.settings import RedisSettings

logger = logging.getLogger(__name__)


class RedisClient:
    """Owns the connection pool and the client built on it.

    Example:
        redis_client = RedisClient()
        await redis_client.connect()
        await redis_client.client.xadd("notification-events", {"eventType": "notification.sent"})
        await redis_client.disconnect()
    """

    def __init__(self, settings: RedisSettings | None = None) -> None:
        self._settings = settings or get_redis_settings()
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Create the pool and verify it with PING.

        Raises:
            redis.exceptions.RedisError: If Redis cannot be reached.
        """
        logger.info(
            "Connecting to Redis",
            extra={
                "host": self._settings.host,
                "port": self._settings.port,
                "db": self._settings.db,
                "max_connections": self._settings.max_connections,
            },
        )
        try:
            self._pool = ConnectionPool.from_url(
                self._settings.url,
                **self._settings.connection_pool_kwargs(),
            )
            self._client = Redis(connection_pool=self._pool)
            await cast("Awaitable[bool]", self._client.ping())
        except Exception:
            logger.exception("Failed to connect to Redis")
            await self.disconnect()
            raise
        logger.info("Redis connection established successfully")

    async def disconnect(self) -> None:
        """Close the client and its pool."""
        if self._client is not None:
            await cast("Any", self._client).aclose()
            self._client = None
        if self._pool is not None:
            await cast("Any", self._pool).aclose()
            self._pool = None
        logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        """The connected client.

        Raises:
            RuntimeError: If not connected.
        """
        if self._client is None:
            msg = "Redis client not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await cast("Awaitable[bool]", self._client.ping()))
        except Exception:
            logger.warning("Redis health check failed", exc_info=True)
            return False


_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient | None:
    """The global client, or None when Redis is not connected."""
    return _redis_client


async def start_redis() -> RedisClient:
    """Connect the global client."""
    global _redis_client
    if _redis_client is None:
        client = RedisClient()
        await client.connect()
        _redis_client = client
    return _redis_client


async def stop_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.disconnect()
        _redis_client = None
