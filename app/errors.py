"""Application error taxonomy and FastAPI exception handlers.

Every error response shares one body shape:
  {statusCode, message, errors?, timestamp, path, requestId}
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", errors: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AppError):
    status_code = 400


class InvalidFilterError(ValidationError):
    """A filter names an unknown field, an unknown operator, or a bad value."""


class ConflictError(AppError):
    status_code = 409


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class UnauthorizedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class StoreError(AppError):
    """The data store is unreachable or rejected a statement."""

    status_code = 503
    retryable = True

    def __init__(self, operation: str, detail: str):
        super().__init__(f"Data store error during {operation}")
        self.operation = operation
        self.detail = detail


def error_body(
    request: Request,
    status_code: int,
    message: str,
    errors: list[dict] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "statusCode": status_code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "requestId": getattr(request.state, "request_id", None),
    }
    if errors:
        body["errors"] = errors
    return body


def _respond(request: Request, exc: Exception, status_code: int, message: str, errors=None) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if status_code >= 500:
        logger.error(
            "Server error | %s %s | request_id=%s | %s",
            request.method, request.url.path, request_id, exc,
            exc_info=exc,
        )
    else:
        logger.warning(
            "Client error | %s %s | request_id=%s | status=%d | %s",
            request.method, request.url.path, request_id, status_code, message,
        )

    body = error_body(request, status_code, message, errors)
    if status_code >= 500 and not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=body)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _respond(request, exc, exc.status_code, exc.message, exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return _respond(request, exc, 400, "Validation error", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    return _respond(request, exc, exc.status_code, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _respond(request, exc, 500, "Internal server error")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
