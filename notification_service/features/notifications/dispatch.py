"""Bounded-concurrency runner for channel sends.

Sends run as background tasks so a slow transport never holds up stream
polling. Each submission carries an attempt and a continuation that receives
the attempt's outcome. Both run under a lock keyed by record id, so status
transitions for one record are serialized.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING, Any

from notification_service.infra.logging import set_log_context

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class DispatchRunner:
    """Runs keyed units of work with at most ``concurrency`` in flight.

    A key that is already queued or running is not submitted twice.

    Example:
        runner = DispatchRunner(concurrency=20)
        runner.submit(record_id, attempt, on_outcome)
        await runner.drain(timeout=30)
    """

    def __init__(self, concurrency: int = 20) -> None:
        self._semaphore = asyncio.Semaphore(concurrency)
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._lock_users: Counter[Hashable] = Counter()
        self._tasks: dict[Hashable, asyncio.Task[None]] = {}
        self._accepting = True

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._tasks

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def locked(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock guarding state transitions for ``key``.

        The lock entry lives only while someone holds or waits for it.
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def submit[R](
        self,
        key: Hashable,
        attempt: Callable[[], Awaitable[R]],
        continuation: Callable[[R], Awaitable[Any]],
    ) -> bool:
        """Schedule ``attempt`` and hand its result to ``continuation``.

        Returns:
            False when the runner is draining or ``key`` is already in flight.
        """
        if not self._accepting:
            logger.warning("Dispatch runner is shutting down; submission rejected", extra={"key": str(key)})
            return False
        if key in self._tasks:
            logger.debug("Submission already in flight", extra={"key": str(key)})
            return False

        task = asyncio.create_task(self._run(key, attempt, continuation), name=f"dispatch-{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda _t, k=key: self._forget(k))
        return True

    async def join(self) -> None:
        """Wait until every submitted unit has finished, including ones submitted meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def drain(self, timeout: float | None = None) -> int:
        """Stop accepting work and wait for in-flight units.

        In-flight units are never cancelled; after ``timeout`` they are left to
        finish on their own.

        Returns:
            Number of units still running when the wait ended.
        """
        self._accepting = False
        pending = list(self._tasks.values())
        if not pending:
            return 0
        logger.info("Draining in-flight deliveries", extra={"count": len(pending), "timeout": timeout})
        _done, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            logger.warning(
                "Shutdown timeout reached with deliveries still in flight",
                extra={"count": len(still_running)},
            )
        return len(still_running)

    def resume(self) -> None:
        self._accepting = True

    async def _run[R](
        self,
        key: Hashable,
        attempt: Callable[[], Awaitable[R]],
        continuation: Callable[[R], Awaitable[Any]],
    ) -> None:
        set_log_context(notification_id=key)
        async with self._semaphore, self.locked(key):
            try:
                outcome = await attempt()
                await continuation(outcome)
            except Exception:
                logger.exception("Dispatch unit failed", extra={"key": str(key)})

    def _forget(self, key: Hashable) -> None:
        self._tasks.pop(key, None)
