"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime
from typing import Dict, Any

from fastapi import APIRouter, Response
from pydantic import BaseModel
from redis.exceptions import RedisError

from src.config import get_settings
from src.database.connection import check_database_health
from src.database.models import utcnow
from src.serving.cache import get_redis, redis_available

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Database connectivity
    - Redis connectivity (reported as disabled when the cache is off)
    """
    settings = get_settings()
    checks = {}
    overall_status = "healthy"

    db_health = await check_database_health()
    checks["database"] = db_health
    if db_health.get("status") != "healthy":
        overall_status = "unhealthy"

    if redis_available():
        try:
            await get_redis().ping()
            checks["redis"] = {"status": "healthy"}
        except RedisError as e:
            checks["redis"] = {"status": "unhealthy", "error": str(e)}
            if overall_status == "healthy":
                overall_status = "degraded"
    else:
        checks["redis"] = {"status": "disabled"}

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=utcnow(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """Returns 503 until the database answers."""
    db_health = await check_database_health()

    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}
