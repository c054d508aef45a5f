"""
Custom Exceptions.

Application errors carry a stable machine code and optional details; the
HTTP status is chosen by core.exception_handlers from the exception type.
"""

from typing import Any


class ApplicationError(Exception):
    """Base exception for all application errors."""

    default_message = "An unexpected error occurred"
    default_code = "SYS_INTERNAL_ERROR"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Unknown task, application, user or notification."""

    default_message = "Resource not found"
    default_code = "RES_NOT_FOUND"


class ValidationError(ApplicationError):
    """Request content the service rejects (missing reason, bad action, profanity)."""

    default_message = "Validation failed"
    default_code = "VAL_VALIDATION_ERROR"


class InvalidStateError(ApplicationError):
    """Task or application is not in the state the transition requires."""

    default_message = "Invalid state for this operation"
    default_code = "RES_INVALID_STATE"


class AuthenticationError(ApplicationError):
    default_message = "Authentication required"
    default_code = "AUTH_UNAUTHORIZED"


class AuthorizationError(ApplicationError):
    """Caller is authenticated but is not the owner or assignee."""

    default_message = "Permission denied"
    default_code = "AUTHZ_FORBIDDEN"


class ConflictError(ApplicationError):
    default_message = "Resource conflict"
    default_code = "RES_CONFLICT"


class ExternalServiceError(ApplicationError):
    default_message = "External service error"
    default_code = "SYS_EXTERNAL_SERVICE_ERROR"


class RateLimitError(ApplicationError):
    """Per-user policy limit reached (withdrawal quota)."""

    default_message = "Rate limit exceeded"
    default_code = "RATE_LIMITED"


class DatabaseError(ApplicationError):
    default_message = "Database error"
    default_code = "SYS_DATABASE_ERROR"
