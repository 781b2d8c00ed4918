"""
Main FastAPI application for the OTG Sports API.
"""
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from app.api.responses import error_body
from app.api.routes import basketball, health, soccer
from app.core.auth import TenantGateway
from app.core.config import settings
from app.core.database import Database
from app.core.errors import ApiError
from app.core.last_used import LastUsedRecorder, database_touch
from app.core.limiter import limiter
from app.core.logging import configure_logging, get_logger
from app.core.middleware import CorrelationIdMiddleware
from app.core.rate_limiter import RateLimiterRegistry
from app.core.scheduler import SyncScheduler
from app.services.goalserve.client import GoalserveClient
from app.services.sync.orchestrator import SyncOrchestrator

configure_logging(
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    database: Database = app.state.database
    database.init()
    if not database.url.startswith("sqlite"):
        await asyncio.to_thread(database.ping)
        logger.info("Database connection verified")

    await app.state.gateway.recorder.start()

    goalserve_client: Optional[GoalserveClient] = None
    if app.state.scheduler_enabled:
        goalserve_client = GoalserveClient.from_settings()
        orchestrator = SyncOrchestrator(database, goalserve_client, future_days=settings.SYNC_FUTURE_DAYS)
        app.state.scheduler = SyncScheduler(
            orchestrator,
            settings.SYNC_SPORT_LIST,
            interval_seconds=settings.SYNC_INTERVAL_SECONDS,
            shutdown_grace_seconds=settings.SYNC_SHUTDOWN_GRACE_SECONDS,
        )
        await app.state.scheduler.start()
        logger.info("Sync scheduler started")

    logger.info("Application started")

    yield

    if app.state.scheduler is not None:
        await app.state.scheduler.stop()
        app.state.scheduler = None
        logger.info("Sync scheduler stopped")
    if goalserve_client is not None:
        await goalserve_client.close()

    await app.state.gateway.recorder.stop()
    if app.state.owns_database:
        database.dispose()
    logger.info("Shutting down application")


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render ApiError (including gateway rejections) as the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        message = f"Invalid parameter '{field}': {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request parameters"
    return JSONResponse(status_code=400, content=error_body("INVALID_PARAMETER", message))


HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", "Internal server error"),
    )


def create_app(
    database: Optional[Database] = None,
    enable_scheduler: Optional[bool] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: Storage handle to serve from. Defaults to one built from
            DATABASE_URL, initialized when the app starts.
        enable_scheduler: Run the sync scheduler in this process. Defaults
            to SCHEDULER_ENABLED.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Soccer and basketball fixtures and live scores from the Goalserve feed",
        lifespan=lifespan
    )

    app.state.owns_database = database is None
    app.state.database = database or Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    app.state.gateway = TenantGateway(
        limiters=RateLimiterRegistry(),
        recorder=LastUsedRecorder(
            database_touch(app.state.database),
            max_pending=settings.LAST_USED_QUEUE_SIZE,
        ),
    )
    app.state.scheduler_enabled = settings.SCHEDULER_ENABLED if enable_scheduler is None else enable_scheduler
    app.state.scheduler = None

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Add correlation ID middleware (must be added before CORS for proper header handling)
    app.add_middleware(CorrelationIdMiddleware)

    # Initialize Prometheus metrics BEFORE including routes
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "X-API-Key", "Content-Type", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID", "Retry-After"],
    )

    app.include_router(health.router)
    # API v1 - tenant routes
    app.include_router(soccer.router, prefix="/api/v1")
    app.include_router(basketball.router, prefix="/api/v1")

    return app


app = create_app()
