"""Append outbound events to a Redis stream."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from notification_service.infra.metrics.prometheus import stream_events_published_total
from notification_service.infra.streams.codec import encode_fields

if TYPE_CHECKING:
    from collections.abc import Mapping

    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class StreamPublisher:
    """Writes events with XADD, trimming the stream to an approximate length.

    Publishing is best-effort: a Redis error is logged and reported as None so a
    delivery outcome is never rolled back because its event could not be sent.
    """

    def __init__(self, redis: Redis, stream: str, *, maxlen: int | None = None) -> None:
        self._redis = redis
        self.stream = stream
        self._maxlen = maxlen

    async def publish(self, event_type: str, payload: Mapping[str, Any]) -> str | None:
        """Append one event.

        Returns:
            The stream entry id, or None when the write failed.
        """
        fields = encode_fields({"eventType": event_type, **payload})
        try:
            entry_id = await self._redis.xadd(
                self.stream,
                fields,  # type: ignore[arg-type]
                maxlen=self._maxlen,
                approximate=True,
            )
        except Exception:
            logger.exception(
                "Failed to publish event",
                extra={"stream": self.stream, "event_type": event_type},
            )
            return None

        stream_events_published_total.labels(event_type=event_type).inc()
        entry = entry_id.decode() if isinstance(entry_id, bytes) else str(entry_id)
        logger.debug(
            "Published event",
            extra={"stream": self.stream, "event_type": event_type, "entry_id": entry},
        )
        return entry
