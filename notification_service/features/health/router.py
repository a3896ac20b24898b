"""Health check endpoints.

Endpoints:
- GET /health: Liveness
- GET /health/ready: Database and Redis readiness
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging

from fastapi import APIRouter, Response, status

from notification_service.core.settings import get_app_settings, get_redis_settings
from notification_service.features.health.schemas import HealthResponse, ReadinessResponse
from notification_service.infra.database import check_database_health
from notification_service.infra.redis import get_redis_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns 200 while the service process is alive and responsive",
)
async def health_check() -> HealthResponse:
    settings = get_app_settings()
    return HealthResponse(
        timestamp=datetime.now(UTC),
        service=settings.service_name,
        version=settings.version,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Service not ready to accept traffic"}},
    summary="Readiness probe",
    description="Returns 200 if the database and, when enabled, Redis are reachable; 503 otherwise",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    checks = {"database": await check_database_health()}
    if get_redis_settings().is_configured:
        redis = get_redis_client()
        checks["redis"] = redis is not None and await redis.health_check()
    ready = all(checks.values())
    if not ready:
        logger.warning("Readiness check failed", extra={"checks": checks})
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, checks=checks, timestamp=datetime.now(UTC))
