"""Prometheus metrics for the delivery pipeline.

Usage:
    from notification_service.features.notifications.metrics import (
        notification_delivery_total,
    )

    notification_delivery_total.labels(channel="EMAIL", status="sent").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

from notification_service.infra.metrics.prometheus import REGISTRY

# =============================================================================
# Record lifecycle
# =============================================================================

notification_created_total = Counter(
    "notification_created_total",
    "Delivery records created",
    labelnames=["notification_type", "channel"],
    registry=REGISTRY,
)
"""
Labels:
    notification_type: Originating event type (user.registered, ...)
    channel: EMAIL, SSE or PUSH
"""

notification_skipped_total = Counter(
    "notification_skipped_total",
    "Channels skipped because the user's preferences disable them",
    labelnames=["channel"],
    registry=REGISTRY,
)

notification_template_missing_total = Counter(
    "notification_template_missing_total",
    "Notifications aborted because no template matched",
    labelnames=["template"],
    registry=REGISTRY,
)

# =============================================================================
# Delivery
# =============================================================================

notification_delivery_total = Counter(
    "notification_delivery_total",
    "Delivery attempts by outcome",
    labelnames=["channel", "status"],
    registry=REGISTRY,
)
"""
Labels:
    channel: EMAIL, SSE or PUSH
    status: sent, retry (failed but retry-eligible) or failed (terminal)
"""

notification_delivery_duration_seconds = Histogram(
    "notification_delivery_duration_seconds",
    "Time spent in a channel send",
    labelnames=["channel"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

notification_retry_total = Counter(
    "notification_retry_total",
    "Records resubmitted by the retry sweep",
    labelnames=["channel"],
    registry=REGISTRY,
)

# =============================================================================
# Bulk
# =============================================================================

notification_bulk_batches_total = Counter(
    "notification_bulk_batches_total",
    "Bulk batches processed",
    labelnames=["notification_type"],
    registry=REGISTRY,
)

notification_bulk_recipients_total = Counter(
    "notification_bulk_recipients_total",
    "Bulk recipients by outcome",
    labelnames=["outcome"],
    registry=REGISTRY,
)
