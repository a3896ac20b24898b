"""Prometheus metrics endpoint.

Endpoints:
    GET /metrics - Prometheus scrape endpoint

Metrics Exposed:
    Ingestion:
        - stream_messages_total - Inbound entries by stream and outcome
        - stream_poll_duration_seconds - XREADGROUP round-trip time
        - stream_messages_reclaimed_total - Entries claimed back from idle consumers
        - stream_events_published_total - Outbound events by type

    Delivery:
        - notification_created_total - Records created by type and channel
        - notification_delivery_total - Attempts by channel and outcome
        - notification_delivery_duration_seconds - Channel send latency
        - notification_retry_total - Records resubmitted by the retry sweep

    Push:
        - push_connections_active / push_active_users

    Application Info:
        - app_info - Service version, name, and environment labels
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

# Registers the delivery metrics on the shared registry
import notification_service.features.notifications.metrics  # noqa: F401
from notification_service.infra.metrics.prometheus import REGISTRY

router = APIRouter(tags=["observability"])


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in text exposition format."""
    data = generate_latest(REGISTRY)
    return Response(
        content=data,
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
