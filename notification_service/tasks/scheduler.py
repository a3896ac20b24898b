"""APScheduler jobs driving ingestion and retries.

Jobs:
    poll_streams    every STREAM_POLL_INTERVAL   read new entries from the inbound streams
    reclaim_stale   every STREAM_RECLAIM_INTERVAL claim entries left pending by dead consumers
    retry_pending   every NOTIFY_RETRY_INTERVAL  resubmit PENDING records below the retry ceiling

Each job runs with ``max_instances=1`` so a slow tick is skipped, never stacked.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import (
    AsyncIOScheduler,  # type: ignore[import-untyped]
)
from apscheduler.triggers.interval import (
    IntervalTrigger,  # type: ignore[import-untyped]
)

if TYPE_CHECKING:
    from notification_service.core.settings import NotificationSettings, StreamSettings
    from notification_service.features.notifications.service import NotificationService
    from notification_service.infra.streams import StreamConsumer

logger = logging.getLogger(__name__)

POLL_JOB_ID = "poll_streams"
RECLAIM_JOB_ID = "reclaim_stale"
RETRY_JOB_ID = "retry_pending"

_scheduler: AsyncIOScheduler | None = None


def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,  # Combine multiple pending executions into one
            "max_instances": 1,  # Only one instance of each job at a time
            "misfire_grace_time": 30,
        },
    )


def get_scheduler() -> AsyncIOScheduler | None:
    return _scheduler


# =============================================================================
# Jobs
# =============================================================================


async def poll_streams(consumer: StreamConsumer) -> int:
    """Read and handle one batch from every inbound stream."""
    try:
        return await consumer.poll_once()
    except Exception:
        logger.exception("Stream poll failed")
        return 0


async def reclaim_stale(consumer: StreamConsumer) -> int:
    """Claim and handle entries left pending past the idle threshold."""
    try:
        return await consumer.reclaim_stale()
    except Exception:
        logger.exception("Reclaiming stale stream entries failed")
        return 0


async def retry_pending(service: NotificationService) -> int:
    """Resubmit retry-eligible delivery records."""
    try:
        return await service.retry_pending()
    except Exception:
        logger.exception("Retry sweep failed")
        return 0


# =============================================================================
# Lifecycle
# =============================================================================


def setup_scheduled_jobs(
    scheduler: AsyncIOScheduler,
    *,
    consumer: StreamConsumer | None,
    service: NotificationService,
    stream_settings: StreamSettings,
    notification_settings: NotificationSettings,
) -> None:
    """Register the ingestion and retry jobs.

    Ingestion jobs are skipped when ``consumer`` is None (Redis unavailable).
    """
    if consumer is not None:
        scheduler.add_job(
            func=poll_streams,
            trigger=IntervalTrigger(seconds=stream_settings.poll_interval),
            args=[consumer],
            id=POLL_JOB_ID,
            name="Poll inbound streams",
            replace_existing=True,
        )
        if stream_settings.reclaim_enabled:
            scheduler.add_job(
                func=reclaim_stale,
                trigger=IntervalTrigger(seconds=stream_settings.reclaim_interval),
                args=[consumer],
                id=RECLAIM_JOB_ID,
                name="Reclaim stale stream entries",
                replace_existing=True,
            )
    else:
        logger.warning("Stream consumer unavailable, ingestion jobs not scheduled")

    scheduler.add_job(
        func=retry_pending,
        trigger=IntervalTrigger(seconds=notification_settings.retry_interval),
        args=[service],
        id=RETRY_JOB_ID,
        name="Retry pending notifications",
        replace_existing=True,
    )

    logger.info("Scheduled jobs registered", extra={"jobs": [job.id for job in scheduler.get_jobs()]})


async def start_scheduler(**job_kwargs: Any) -> AsyncIOScheduler:
    """Create the scheduler, register jobs and start it.

    Keyword arguments are passed to ``setup_scheduled_jobs``.
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("APScheduler is already running")
        return _scheduler

    scheduler = create_scheduler()
    setup_scheduled_jobs(scheduler, **job_kwargs)
    scheduler.start()
    _scheduler = scheduler
    logger.info("APScheduler started", extra={"jobs": len(scheduler.get_jobs())})
    return scheduler


async def stop_scheduler() -> None:
    """Stop ticking. Running jobs are not waited for; in-flight sends are drained separately."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.info("Stopping APScheduler")
        _scheduler.shutdown(wait=False)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")
    _scheduler = None
