"""
Error envelope rendering.

Every failure leaves the API as

    {"success": false, "error": {"code", "message", "details"},
     "metadata": {"timestamp", "request_id"}}

ApplicationError subclasses map to a status through EXCEPTION_STATUS_MAP
(a subclass inherits its parent's status). Body and query validation
failures are 422 with one entry per field, named in camelCase like the
request body. Anything else is a 500 whose details stay hidden unless the
api_detailed_errors flag is on.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from trudify.backend.core.exceptions import (
    ApplicationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from trudify.backend.core.logging import get_logger
from trudify.backend.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    ValidationError: 400,
    InvalidStateError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    RateLimitError: 429,
    DatabaseError: 500,
    ExternalServiceError: 502,
}

# Parameter locations FastAPI prefixes to every error path
_LOCATIONS = frozenset({"body", "query", "path"})


def status_for(exc: ApplicationError) -> int:
    return next((EXCEPTION_STATUS_MAP[cls] for cls in type(exc).__mro__ if cls in EXCEPTION_STATUS_MAP), 500)


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


def _request_fields(request: Request) -> dict[str, Any]:
    return {"path": request.url.path, "method": request.method, "request_id": _get_request_id(request)}


def _render(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    envelope = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or None),
        metadata=ResponseMetadata(request_id=_get_request_id(request)),
    )
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


def _field_path(loc: tuple | list) -> str:
    """("body", "budget_min") -> "budgetMin"; list indexes are kept as-is."""
    parts = [str(part) for part in loc if part not in _LOCATIONS]
    return ".".join(part if part.isdigit() else to_camel(part) for part in parts)


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Server error" if status_code >= 500 else "Client error",
        extra={"code": exc.code, "message": exc.message, "status": status_code, **_request_fields(request)},
    )
    return _render(request, status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.warning("Request validation failed", extra={"error_count": len(errors), **_request_fields(request)})

    fields = [
        {
            "field": _field_path(error.get("loc", ())),
            "message": error.get("msg", "Validation error"),
            "type": error.get("type", "unknown"),
        }
        for error in errors
    ]
    return _render(request, 422, "VAL_REQUEST_INVALID", "Request validation failed", {"validation_errors": fields})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    from trudify.backend.core.config import get_app_config

    exception_type = type(exc).__name__
    logger.exception("Unhandled exception", extra={"exception_type": exception_type, **_request_fields(request)})

    details = None
    if get_app_config().features.api_detailed_errors:
        details = {"exception_type": exception_type, "exception": str(exc)}
    return _render(request, 500, "SYS_INTERNAL_ERROR", "An unexpected error occurred", details)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
