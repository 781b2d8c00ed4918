"""
FastAPI middleware for request correlation ID tracking.

This module provides middleware that:
1. Reads or generates X-Correlation-ID header
2. Stores it in request state for access in endpoints
3. Returns it in response headers
4. Sets it in the logging context for structured logs
"""
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.logging import (
    set_correlation_id,
    clear_correlation_id,
    tenant_var,
    get_logger,
)

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation ID tracking to all requests.

    The tenant logging context starts empty for every request; the
    tenant gateway fills it in once a credential is accepted.

    Usage:
        app.add_middleware(CorrelationIdMiddleware)

    Access in endpoints:
        correlation_id = request.state.correlation_id
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        request.state.correlation_id = correlation_id

        token = set_correlation_id(correlation_id)
        tenant_token = tenant_var.set("")

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id

            logger.debug(
                f"Request completed: {request.method} {request.url.path}",
                extra={"method": request.method, "path": request.url.path, "status": response.status_code},
            )

            return response
        finally:
            tenant_var.reset(tenant_token)
            clear_correlation_id(token)
