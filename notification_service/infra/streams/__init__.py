"""Redis stream ingestion and publishing."""

from __future__ import annotations

from .codec import decode_fields, encode_fields, is_payload_field
from .consumer import StreamConsumer
from .publisher import StreamPublisher

__all__ = [
    "StreamConsumer",
    "StreamPublisher",
    "decode_fields",
    "encode_fields",
    "is_payload_field",
]
