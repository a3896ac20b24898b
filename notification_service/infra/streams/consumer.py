"""Consumer-group ingestion from Redis streams.

Delivery is at-least-once. An entry is acknowledged after its handler returns
or when it cannot be decoded at all. If the handler raises, the entry stays
pending for this consumer and is picked up again by ``reclaim_stale``.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from redis.exceptions import ResponseError

from notification_service.features.notifications.exceptions import EventDecodeError
from notification_service.infra.logging import remove_from_log_context, set_log_context
from notification_service.infra.metrics.prometheus import (
    stream_messages_reclaimed_total,
    stream_messages_total,
    stream_poll_duration_seconds,
)
from notification_service.infra.streams.codec import decode_fields

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from redis.asyncio import Redis

    from notification_service.core.settings import StreamSettings

    MessageHandler = Callable[[str, dict[str, str]], Awaitable[None]]

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def _iter_read_reply(reply: Any) -> Iterable[tuple[str, list[Any]]]:
    """Normalize an XREADGROUP reply (RESP2 list or RESP3 dict) to (stream, entries) pairs."""
    if not reply:
        return []
    if isinstance(reply, dict):
        # RESP3 wraps each stream's entry list in a one-element list
        return [(_text(stream), entries[0] if entries else []) for stream, entries in reply.items()]
    return [(_text(stream), entries) for stream, entries in reply]


class StreamConsumer:
    """Reads the inbound streams as one member of a consumer group.

    Example:
        consumer = StreamConsumer(redis, settings, handler)
        await consumer.ensure_groups()
        await consumer.poll_once()
    """

    def __init__(self, redis: Redis, settings: StreamSettings, handler: MessageHandler) -> None:
        self._redis = redis
        self._settings = settings
        self._handler = handler
        self._streams = settings.inbound_streams
        self._running = True

    @property
    def group(self) -> str:
        return self._settings.consumer_group

    @property
    def consumer_name(self) -> str:
        return self._settings.consumer_name

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Stop accepting new polls. An in-progress poll finishes normally."""
        self._running = False

    async def ensure_groups(self) -> None:
        """Create the consumer group on every inbound stream; an existing group is fine."""
        for stream in self._streams:
            try:
                await self._redis.xgroup_create(stream, self.group, id="0", mkstream=True)
                logger.info("Created consumer group", extra={"stream": stream, "group": self.group})
            except ResponseError as exc:
                if "BUSYGROUP" not in str(exc):
                    raise
                logger.debug("Consumer group already exists", extra={"stream": stream, "group": self.group})

    async def poll_once(self) -> int:
        """Read and handle one batch of new entries from every inbound stream.

        Returns:
            Number of entries read.
        """
        if not self._running:
            return 0

        start = time.perf_counter()
        try:
            reply = await self._redis.xreadgroup(
                self.group,
                self.consumer_name,
                {stream: ">" for stream in self._streams},
                count=self._settings.batch_size,
                block=self._settings.block_ms or None,
            )
        except ResponseError as exc:
            if "NOGROUP" in str(exc):
                logger.warning("Consumer group missing, recreating", extra={"group": self.group})
                await self.ensure_groups()
                return 0
            raise

        count = 0
        for stream, entries in _iter_read_reply(reply):
            for message_id, fields in entries:
                count += 1
                await self._handle_entry(stream, _text(message_id), fields)

        stream_poll_duration_seconds.observe(time.perf_counter() - start)
        return count

    async def reclaim_stale(self) -> int:
        """Claim entries other consumers left pending too long and handle them here.

        Returns:
            Number of entries reclaimed.
        """
        if not self._running:
            return 0

        total = 0
        for stream in self._streams:
            reply = await self._redis.xautoclaim(
                stream,
                self.group,
                self.consumer_name,
                min_idle_time=self._settings.reclaim_idle_ms,
                start_id="0-0",
                count=self._settings.batch_size,
            )
            # Redis 7 appends a list of deleted ids
            entries = reply[1] if len(reply) >= 2 else []
            for message_id, fields in entries:
                if fields is None:
                    continue
                total += 1
                stream_messages_reclaimed_total.labels(stream=stream).inc()
                await self._handle_entry(stream, _text(message_id), fields)

        if total:
            logger.info("Reclaimed stale stream entries", extra={"count": total})
        return total

    async def _handle_entry(self, stream: str, message_id: str, fields: Any) -> None:
        kind = self._streams.get(stream)
        set_log_context(stream=stream, message_id=message_id)
        try:
            try:
                payload = decode_fields(fields or {}, base64_payloads=self._settings.base64_payloads)
                if kind is None:
                    msg = f"Unknown stream {stream!r}"
                    raise EventDecodeError(msg, stream=stream, message_id=message_id)
                await self._handler(kind, payload)
            except EventDecodeError as exc:
                logger.warning(
                    "Dropping malformed stream entry",
                    extra={"stream": stream, "message_id": message_id, "error": str(exc)},
                )
                stream_messages_total.labels(stream=stream, outcome="dropped").inc()
                await self._ack(stream, message_id)
                return
            except Exception:
                logger.exception(
                    "Stream entry handler failed; leaving entry pending",
                    extra={"stream": stream, "message_id": message_id},
                )
                stream_messages_total.labels(stream=stream, outcome="failed").inc()
                return

            stream_messages_total.labels(stream=stream, outcome="handled").inc()
            await self._ack(stream, message_id)
        finally:
            remove_from_log_context("stream", "message_id", "event_type")

    async def _ack(self, stream: str, message_id: str) -> None:
        await self._redis.xack(stream, self.group, message_id)
