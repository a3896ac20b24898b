"""Clean raw environment values before pydantic validates them."""

from __future__ import annotations

import re
from typing import Any

# A "#" starts a comment only at the beginning or after whitespace
_INLINE_COMMENT = re.compile(r"(?:^|\s)#.*$")


def strip_inline_comment(value: str) -> str:
    """Drop a trailing ``# comment`` some env-file loaders leave in place."""
    return _INLINE_COMMENT.sub("", value).strip()


def sanitize_inline_numeric(value: Any) -> Any:
    if isinstance(value, str):
        return strip_inline_comment(value) or value
    return value


def split_csv(value: Any) -> Any:
    """Turn ``"a, b"`` into ``["a", "b"]``; JSON arrays pass through for pydantic."""
    if isinstance(value, str) and not value.lstrip().startswith("["):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value
