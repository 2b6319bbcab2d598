"""
Middleware configuration for the application.
Includes Correlation ID setup and request logging middleware.
"""

import time
from typing import Callable

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

# Health probes hit these every few seconds
QUIET_PATHS = {"/health", "/"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests and responses with timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        path = request.url.path
        quiet = path in QUIET_PATHS

        if not quiet:
            logger.info(
                "Request started",
                method=request.method,
                path=path,
                client_ip=request.client.host if request.client else "unknown",
            )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                method=request.method,
                path=path,
                process_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        if not quiet:
            logger.info(
                "Request completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                process_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Setup all middleware for the application."""
    # Starlette runs middleware LIFO: the correlation id must wrap request logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        update_request_header=True,
    )
