"""
Public service endpoints: service info and health checks.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.limiter import limiter
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/")
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def root(request: Request):
    """Service information."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "sports": ["/api/v1/soccer", "/api/v1/basketball"],
    }


@router.get("/health")
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get("/api/health")
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def api_health(request: Request):
    """Detailed health check with component-level status."""
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "components": {}
    }
    all_healthy = True

    # 1. Database
    try:
        database = request.app.state.database
        with database.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        health_status["components"]["database"] = {"status": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["components"]["database"] = {"status": "unhealthy", "error": e.__class__.__name__}
        all_healthy = False

    # 2. Scheduler
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None and scheduler.running:
        jobs = scheduler.scheduler.get_jobs() if scheduler.scheduler else []
        health_status["components"]["scheduler"] = {
            "status": "running",
            "jobs": [{"id": j.id, "name": j.name} for j in jobs],
        }
    else:
        health_status["components"]["scheduler"] = {"status": "disabled"}

    # 3. Last-used recorder
    recorder = request.app.state.gateway.recorder
    health_status["components"]["last_used_recorder"] = {
        "status": "running" if recorder.running else "stopped",
        "pending": recorder.pending,
        "dropped": recorder.dropped,
    }

    if not all_healthy:
        health_status["status"] = "unhealthy"

    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content=health_status
    )
