"""Ordered startup and shutdown hooks.

Each component registers a ``startup_*`` and a ``shutdown_*`` coroutine under
one name. Startup follows ``requires`` edges, then ``startup_order``.
Shutdown walks the hooks that actually started, last one first, so a failed
startup unwinds only what came up.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
from typing import Any

logger = logging.getLogger(__name__)

HookFunc = Callable[..., Awaitable[None]]


@dataclass(slots=True)
class LifecycleHook:
    name: str
    func: HookFunc
    startup_order: int = 50
    requires: list[str] = field(default_factory=list)


def _is_shutdown(func: HookFunc) -> bool:
    func_name = func.__name__.lower()
    return func_name.startswith("shutdown") or func_name.endswith("_shutdown")


class LifecycleRegistry:
    """Hook registry driven by the FastAPI lifespan.

    Example:
        @lifespan_registry.register(name="redis", startup_order=15, requires=["core"])
        async def startup_redis(redis_settings: RedisSettings, **kwargs: object) -> None:
            await start_redis(redis_settings)

        @lifespan_registry.register(name="redis")
        async def shutdown_redis(**kwargs: object) -> None:
            await stop_redis()
    """

    def __init__(self) -> None:
        self._startup: dict[str, LifecycleHook] = {}
        self._shutdown: dict[str, LifecycleHook] = {}
        self._started: list[str] = []

    def register(
        self,
        name: str,
        startup_order: int = 50,
        requires: list[str] | None = None,
    ) -> Callable[[HookFunc], HookFunc]:
        """Register the startup or shutdown half of ``name``, picked by function name.

        Raises:
            ValueError: If that half of ``name`` already has a hook.
        """

        def decorator(func: HookFunc) -> HookFunc:
            shutdown = _is_shutdown(func)
            hooks = self._shutdown if shutdown else self._startup
            if name in hooks:
                kind = "Shutdown" if shutdown else "Startup"
                msg = f"{kind} hook '{name}' already registered"
                raise ValueError(msg)
            hooks[name] = LifecycleHook(name, func, startup_order, list(requires or []))
            return func

        return decorator

    def _resolve_startup_order(self) -> list[str]:
        """Depth-first order over ``requires``, visiting roots by ``startup_order``.

        Raises:
            ValueError: On a missing requirement or a cycle.
        """
        ordered: list[str] = []

        def visit(name: str, path: tuple[str, ...]) -> None:
            if name in path:
                msg = f"Circular dependency detected: {' -> '.join((*path, name))}"
                raise ValueError(msg)
            if name in ordered:
                return
            for dep in self._startup[name].requires:
                if dep not in self._startup:
                    msg = f"Hook '{name}' requires '{dep}' but it's not registered"
                    raise ValueError(msg)
                visit(dep, (*path, name))
            ordered.append(name)

        for hook in sorted(self._startup.values(), key=lambda h: h.startup_order):
            visit(hook.name, ())
        return ordered

    async def startup(self, **settings: Any) -> None:
        """Run startup hooks in order, passing every settings object to each."""
        self._started = []
        for name in self._resolve_startup_order():
            logger.debug("Starting %s", name)
            try:
                await self._startup[name].func(**settings)
            except Exception:
                logger.exception("Failed to start %s", name)
                raise
            self._started.append(name)

    async def shutdown(self, **settings: Any) -> None:
        """Stop started components in reverse; one failing hook does not stop the rest."""
        started, self._started = self._started, []
        for name in reversed(started):
            hook = self._shutdown.get(name)
            if hook is None:
                continue
            logger.debug("Stopping %s", name)
            try:
                await hook.func(**settings)
            except Exception:
                logger.warning("Error stopping %s", name, exc_info=True)


lifespan_registry = LifecycleRegistry()

__all__ = ["LifecycleHook", "LifecycleRegistry", "lifespan_registry"]
