"""Flat field-map encoding for Redis stream entries.

Producers write every value as a string, optionally base64 encoded, and may
add bookkeeping fields (``init`` or anything starting with ``_``) that carry
no payload.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import TYPE_CHECKING, Any

from notification_service.features.notifications.exceptions import EventDecodeError

if TYPE_CHECKING:
    from collections.abc import Mapping

IGNORED_FIELD = "init"


def _as_text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def is_payload_field(key: str) -> bool:
    """Whether ``key`` carries payload rather than producer bookkeeping."""
    return key != IGNORED_FIELD and not key.startswith("_")


def decode_fields(fields: Mapping[Any, Any], *, base64_payloads: bool = True) -> dict[str, str]:
    """Clean a raw stream entry into a plain ``str -> str`` map.

    Raises:
        EventDecodeError: If a value is not valid base64 or not UTF-8.
    """
    cleaned: dict[str, str] = {}
    for raw_key, raw_value in fields.items():
        key = _as_text(raw_key)
        if not is_payload_field(key):
            continue
        value = _as_text(raw_value)
        if base64_payloads:
            try:
                value = base64.b64decode(value, validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as exc:
                msg = f"Field {key!r} is not valid base64 UTF-8: {exc}"
                raise EventDecodeError(msg) from exc
        cleaned[key] = value
    return cleaned


def _encode_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return json.dumps(value, default=str)


def encode_fields(payload: Mapping[str, Any]) -> dict[str, str]:
    """Stringify a payload for XADD; lists and dicts become JSON. None values are dropped."""
    return {key: _encode_value(value) for key, value in payload.items() if value is not None}
