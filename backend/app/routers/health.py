"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime

import redis.asyncio as redis
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.database import engine
from app.services.notifications import hub
from app.utils.cache import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check for load balancer (no DB/Redis check)."""
    return {
        "status": "ok",
        "service": "RepoTrack",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "live_clients": hub.client_count,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check: database always, Redis only when something uses it.

    Returns 200 only if every required dependency answers.
    """
    checks = {"service": "ok", "database": "unknown", "redis": "skipped"}
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as e:
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    if settings.cache_enabled or settings.notification_relay == "redis":
        try:
            client = await get_redis()
            await client.ping()
            checks["redis"] = "ok"
        except (redis.RedisError, OSError) as e:
            checks["redis"] = f"error: {str(e)[:100]}"
            overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "RepoTrack",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
