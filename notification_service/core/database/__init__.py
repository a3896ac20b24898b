"""Declarative base and the generic async repository."""

from __future__ import annotations

from .base import NAMING_CONVENTION, Base, TimestampedBase
from .repository import BaseRepository, SearchResult

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "SearchResult",
    "TimestampedBase",
]
