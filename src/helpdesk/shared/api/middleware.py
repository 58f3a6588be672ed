"""
Shared API Middleware
======================

Middleware and exception handlers installed on the FastAPI application.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from helpdesk.core.exceptions import ApplicationException
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# error_code -> HTTP status
ERROR_STATUS_CODES: Dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "INVALID_STATUS": 400,
    "AUTHENTICATION_REQUIRED": 401,
    "PERMISSION_DENIED": 403,
    "NOT_FOUND": 404,
    "HANDLER_NOT_FOUND": 404,
    "INVALID_TRANSITION": 409,
    "DOMAIN_ERROR": 409,
    "CONFLICT": 409,
    "HISTORY_WRITE_FAILED": 503,
    "EXTERNAL_SERVICE_ERROR": 502,
}


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    An incoming X-Correlation-ID is kept; otherwise one is generated.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "user_id": request.headers.get("X-User-Id"),
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def _error_body(request: Request, exc_code: str, detail: str, details: dict, retryable: bool) -> dict:
    return {
        "detail": detail,
        "error_code": exc_code,
        "details": details,
        "retryable": retryable,
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Map the exception taxonomy onto HTTP status codes."""
    status_code = ERROR_STATUS_CODES.get(exc.error_code, 500)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "Request rejected",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "path": request.url.path,
            "error_code": exc.error_code,
            "error_message": exc.message,
        }
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, exc.error_code, exc.message, exc.details, exc.retryable),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures use the same shape and code as service-level validation."""
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body(request, "VALIDATION_ERROR", "Request validation failed", {"errors": errors}, False),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Internal details are only echoed back in development.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )
