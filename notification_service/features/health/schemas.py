"""Health probe responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: datetime
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness of each backing component; the endpoint answers 503 unless all are up.

    Redis appears in ``checks`` only when it is enabled.
    """

    ready: bool
    checks: dict[str, bool] = Field(default_factory=dict, examples=[{"database": True, "redis": True}])
    timestamp: datetime
