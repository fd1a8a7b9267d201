"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.
"""

import time
import uuid
from typing import Any, Callable, Dict, List
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from quizhub.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# First element of a pydantic error location names the request part
REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    Correlation IDs link every log line of a request together.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs all requests and responses.

    Provides audit trail and debugging information.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            response_time = time.perf_counter() - start_time
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "url": str(request.url),
                    "error": str(e),
                    "response_time_ms": int(response_time * 1000)
                }
            )
            raise

        response_time = time.perf_counter() - start_time
        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "url": str(request.url),
                "status_code": response.status_code,
                "response_time_ms": int(response_time * 1000)
            }
        )
        return response


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic errors into ``{"field", "message"}`` pairs."""
    formatted = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if len(loc) > 1 and loc[0] in REQUEST_LOCATIONS:
            loc = loc[1:]
        formatted.append({
            "field": ".".join(str(part) for part in loc),
            "message": error.get("msg", "Invalid value"),
        })
    return formatted


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Request validation failures.

    Responds 400 with ``{"success": false, "errors": [{"field", "message"}]}``.
    """
    errors = format_validation_errors(exc.errors())

    logger.info(
        "Request validation failed",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "path": request.url.path,
            "fields": [error["field"] for error in errors],
        }
    )

    return JSONResponse(
        status_code=400,
        content={"success": False, "errors": errors}
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
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

    # Don't expose internal details outside development
    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the validation and catch-all handlers on ``app``."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
