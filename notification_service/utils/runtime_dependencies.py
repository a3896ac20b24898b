"""Mark imports that FastAPI resolves at runtime.

With ``from __future__ import annotations`` route signatures are stored as
strings and resolved against module globals when FastAPI builds its
dependency graph. Linters see those imports as type-only; recording them here
keeps them in place without per-line ``noqa`` comments.
"""

from __future__ import annotations

from typing import Any

__all__ = ["require_runtime_dependency"]

_RUNTIME_DEPENDENCIES: list[Any] = []


def require_runtime_dependency(*dependencies: Any) -> None:
    """Record objects that must stay importable at runtime."""
    _RUNTIME_DEPENDENCIES.extend(dependency for dependency in dependencies if dependency is not None)
