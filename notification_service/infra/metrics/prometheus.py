"""Prometheus metrics for the service's infrastructure."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Every metric in the service registers here; /metrics exposes this registry
REGISTRY = CollectorRegistry()

DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)

# Application info
app_info = Gauge(
    "app_info",
    "Service identity",
    ["service", "version", "environment"],
    registry=REGISTRY,
)

# Stream ingestion metrics
stream_messages_total = Counter(
    "stream_messages_total",
    "Inbound stream messages by outcome",
    ["stream", "outcome"],
    registry=REGISTRY,
)
"""
Labels:
    stream: Inbound stream name
    outcome: handled, dropped (malformed, acked) or failed (left pending)
"""

stream_poll_duration_seconds = Histogram(
    "stream_poll_duration_seconds",
    "Duration of one consumer-group poll including handling",
    registry=REGISTRY,
    buckets=DEFAULT_LATENCY_BUCKETS,
)

stream_messages_reclaimed_total = Counter(
    "stream_messages_reclaimed_total",
    "Stale pending entries claimed from other consumers",
    ["stream"],
    registry=REGISTRY,
)

stream_events_published_total = Counter(
    "stream_events_published_total",
    "Outbound events appended to the notification stream",
    ["event_type"],
    registry=REGISTRY,
)

# Push connection metrics
push_connections_active = Gauge(
    "push_connections_active",
    "Open server-sent event connections",
    registry=REGISTRY,
)

push_active_users = Gauge(
    "push_active_users",
    "Users with at least one open server-sent event connection",
    registry=REGISTRY,
)
