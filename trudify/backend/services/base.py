"""
Service Layer Base.

Services own the business rules: who may act on a task, which state it
must be in, and which failures the caller sees. Repositories below them
only run queries; endpoints above them only translate HTTP.

Error mapping done here:
- a missing caller is AuthenticationError (401)
- the wrong caller for a task is AuthorizationError (403)
- a conditional UPDATE that matched no row is InvalidStateError (400)
- unique violations are ConflictError (409), other SQLAlchemy errors
  DatabaseError (500)
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DatabaseError,
    InvalidStateError,
    ValidationError,
)
from trudify.backend.core.logging import get_logger
from trudify.backend.models.user import User

T = TypeVar("T")

_UNIQUE_MARKERS = ("unique", "duplicate")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BaseService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._logger = get_logger(self.__class__.__module__)

    @property
    def session(self) -> AsyncSession:
        return self._session

    # =========================================================================
    # Database
    # =========================================================================

    async def _execute_db_operation(self, operation: str, awaitable: Awaitable[T]) -> T:
        """
        Await a repository call, translating SQLAlchemy errors.

        Raises:
            ConflictError: Unique constraint violated (duplicate row)
            DatabaseError: Any other database failure
        """
        try:
            return await awaitable
        except IntegrityError as e:
            self._logger.warning(
                "Database integrity error",
                extra={"service": self.__class__.__name__, "operation": operation, "error": str(e)},
            )
            if any(marker in str(e).lower() for marker in _UNIQUE_MARKERS):
                raise ConflictError("Resource already exists", details={"operation": operation})
            raise DatabaseError(f"Database constraint violation: {operation}")
        except SQLAlchemyError as e:
            self._logger.error(
                "Database error",
                extra={"service": self.__class__.__name__, "operation": operation, "error": str(e)},
            )
            raise DatabaseError(f"Database operation failed: {operation}")

    async def _compare_and_swap(self, operation: str, update: Awaitable[Any], conflict_message: str) -> None:
        """
        Run a conditional UPDATE and require that it matched a row.

        A falsy result means another request changed the row after it was
        read, so the transition is refused instead of overwriting it.
        """
        if not await self._execute_db_operation(operation, update):
            self._log_debug("Conditional update matched no rows", operation=operation)
            raise InvalidStateError(conflict_message)

    # =========================================================================
    # Caller checks
    # =========================================================================

    def _require_actor(self, actor: User | None) -> User:
        if actor is None:
            raise AuthenticationError("Authentication required")
        return actor

    def _require_party(self, actor: User, party_id: str | None, message: str) -> None:
        """403 unless the caller is the given party (task owner, assigned professional)."""
        if party_id is None or actor.id != party_id:
            raise AuthorizationError(message)

    def _validate_required(self, fields: dict[str, Any], field_names: list[str]) -> None:
        """
        Raises:
            ValidationError: Listing every field that is missing or blank
        """
        missing = [name for name in field_names if is_blank(fields.get(name))]
        if missing:
            raise ValidationError("Required fields missing", details={"missing_fields": missing})

    # =========================================================================
    # Logging
    # =========================================================================

    def _log_operation(self, operation: str, **context: Any) -> None:
        self._logger.info(operation, extra={"service": self.__class__.__name__, **context})

    def _log_debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, extra={"service": self.__class__.__name__, **context})
