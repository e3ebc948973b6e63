import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.db.base import get_session_factory
from app.db.redis import get_redis

logger = structlog.get_logger(__name__)

router = APIRouter()

SERVICE_NAME = "freight-erp-backend"


@router.get("/health")
async def health_check(request: Request):
    """Liveness check for the load balancer.

    Returns 503 during graceful shutdown so traffic drains away.
    """
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": SERVICE_NAME},
        )
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness_check(redis=Depends(get_redis)):
    """Readiness check. Redis only backs the dashboard cache, so it degrades but never blocks."""
    checks = {"database": False, "redis": False}

    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    try:
        await redis.ping()
        checks["redis"] = True
    except Exception as e:
        logger.warning("redis_health_check_failed", error=str(e))

    status_code = 200 if checks["database"] else 503
    status = "ready" if all(checks.values()) else ("degraded" if checks["database"] else "unavailable")

    return JSONResponse(status_code=status_code, content={"status": status, "checks": checks})
