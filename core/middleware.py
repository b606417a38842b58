"""
Application Middleware and Error Handlers for the Sapien API.

This module defines the cross-cutting request pipeline: correlation ids,
error translation, request timing and early request rejection. Every
component renders failures in the same JSON error envelope
(`{"success": false, "error": ..., "details"?: ...}`).

Key Components:
- `CorrelationMiddleware`: Assigns a correlation ID to every request, stores
  it in the logging context and echoes it in the `X-Correlation-ID` header.
- `ErrorHandlingMiddleware`: Last line of defence for exceptions no handler
  recognises. Returns a 500 envelope; exception text and traceback are only
  included outside production.
- `PerformanceMiddleware`: Logs request start and completion, adds an
  `X-Process-Time` header and warns about slow requests.
- `RequestValidationMiddleware`: Rejects oversized bodies and unsupported
  content types before routing.
- `register_exception_handlers`: Maps `SapienAPIException` subclasses,
  FastAPI request validation errors and Starlette HTTP errors onto the
  envelope.

Architectural Design:
- Layered Processing Pipeline: `create_app` adds the middleware so that
  correlation runs outermost and error handling sits inside it, which lets
  even 500 responses carry the correlation header.
- Starlette's `BaseHTTPMiddleware`: All middleware are built on it.
- Known vs. Unknown Errors: Domain errors are translated by exception
  handlers close to the router; anything else propagates to
  `ErrorHandlingMiddleware`.
"""

import time
import traceback
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .exceptions import SapienAPIException, ValidationError, error_body
from .logging_config import get_logger, set_correlation_id
from .validation import field_errors

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 1.0
DEFAULT_MAX_REQUEST_BYTES = 10 * 1024 * 1024

ALLOWED_CONTENT_TYPES = (
    "application/json",
    "application/x-www-form-urlencoded",
    "multipart/form-data",
)


def error_response(status_code: int, message: str, details=None) -> JSONResponse:
    content = {"success": False, "error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Tag each request and its response with a correlation ID"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )
        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns unhandled exceptions into a 500 error envelope"""

    def __init__(self, app: ASGIApp, expose_details: bool = True):
        super().__init__(app)
        self.expose_details = expose_details

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Unhandled {type(e).__name__} on {request.method} {request.url.path}: {e}",
                extra={
                    "error_type": type(e).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            details = None
            if self.expose_details:
                details = {
                    "message": str(e),
                    "type": type(e).__name__,
                    "stack": traceback.format_exc(),
                }
            return error_response(500, "Internal server error", details)


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            f"-> {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "user_agent": request.headers.get("user-agent"),
                "client_ip": get_client_ip(request),
            },
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        process_time_ms = round(process_time * 1000, 2)
        response.headers["X-Process-Time"] = str(process_time_ms)

        logger.info(
            f"<- {request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": process_time_ms,
            },
        )

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "process_time_ms": process_time_ms,
                    "threshold_exceeded": True,
                },
            )

        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Rejects oversized requests and unsupported body types"""

    def __init__(self, app: ASGIApp, max_request_size: int = DEFAULT_MAX_REQUEST_BYTES):
        super().__init__(app)
        self.max_request_size = max_request_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        try:
            declared_size = int(content_length) if content_length else 0
        except ValueError:
            return error_response(400, "Invalid Content-Length header")

        if declared_size > self.max_request_size:
            logger.warning(
                f"Request too large: {declared_size} bytes",
                extra={
                    "content_length": declared_size,
                    "max_size": self.max_request_size,
                    "path": request.url.path,
                },
            )
            return error_response(
                413,
                f"Request size exceeds maximum allowed size of {self.max_request_size} bytes",
            )

        # Bodiless PATCH calls (like/use) carry no content type
        has_body = declared_size > 0 or "transfer-encoding" in request.headers
        if request.method in ("POST", "PUT", "PATCH") and has_body:
            content_type = request.headers.get("content-type", "")
            if not content_type.startswith(ALLOWED_CONTENT_TYPES):
                logger.warning(
                    f"Invalid content type: {content_type}",
                    extra={
                        "content_type": content_type,
                        "path": request.url.path,
                        "method": request.method,
                    },
                )
                return error_response(
                    415, f"Content type '{content_type}' is not supported"
                )

        return await call_next(request)


def get_client_ip(request: Request) -> str:
    """Best-effort caller address: X-Forwarded-For, then X-Real-IP, then the socket peer"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


async def sapien_exception_handler(request: Request, exc: SapienAPIException) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"Application error: {exc.message}",
        extra={
            "error_type": type(exc).__name__,
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = field_errors(exc.errors())
    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "fields": [e["field"] for e in errors]},
    )
    return JSONResponse(status_code=400, content=error_body(ValidationError(errors)))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    logger.warning(
        f"HTTP exception: {exc.status_code} - {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SapienAPIException, sapien_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
