"""
Custom middleware and exception handlers for the FastAPI application.
Provides logging, security headers and consistent error responses.
"""

import time
from datetime import datetime, timezone
from typing import Callable
from fastapi import FastAPI, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse

import structlog

from membership_queue.core.config import settings
from membership_queue.core.exceptions import (
    BatchAlreadyRunningError,
    DataAccessError,
    MembershipQueueException,
    NotFoundError,
)
from membership_queue.api.schemas.common import create_error_response


logger = structlog.get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            process_time = time.perf_counter() - start_time
            response.headers["X-Process-Time"] = str(process_time)

            logger.info(
                "Request completed",
                method=request.method,
                url=str(request.url),
                status_code=response.status_code,
                process_time=process_time,
            )

            return response

        except Exception as e:
            process_time = time.perf_counter() - start_time

            logger.error(
                "Request failed",
                method=request.method,
                url=str(request.url),
                error=str(e),
                process_time=process_time,
            )

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error_code": "INTERNAL_SERVER_ERROR",
                    "message": "An internal server error occurred",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-API-Version"] = settings.app_version

        return response


def _status_for(exc: MembershipQueueException) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, BatchAlreadyRunningError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, DataAccessError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def membership_queue_exception_handler(request: Request, exc: MembershipQueueException) -> JSONResponse:
    """Render engine exceptions as an ``ErrorResponse`` envelope."""
    status_code = _status_for(exc)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "Request rejected",
        method=request.method,
        url=str(request.url),
        error_code=exc.code,
        error=exc.message,
        status_code=status_code,
    )

    body = create_error_response(exc.message, error_code=exc.code, details=exc.details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MembershipQueueException, membership_queue_exception_handler)


def add_middleware(app: FastAPI) -> None:
    """Add all middleware to the FastAPI app."""

    # CORS middleware (first to handle preflight requests)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Custom middleware (order matters - last added is executed first)
    app.add_middleware(SecurityHeadersMiddleware)

    # Logging (should be last to capture all processing)
    app.add_middleware(LoggingMiddleware)

    logger.info("Middleware configured successfully")
