"""Redis connection lifecycle."""

from __future__ import annotations

from .client import RedisClient, get_redis_client, start_redis, stop_redis

__all__ = ["RedisClient", "get_redis_client", "start_redis", "stop_redis"]
