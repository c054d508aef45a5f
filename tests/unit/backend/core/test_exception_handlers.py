"""
Unit Tests for Exception Handlers.

Tests the exception handler functions in isolation.
"""

import json
from unittest.mock import MagicMock

from fastapi import Request
from fastapi.exceptions import RequestValidationError

from trudify.backend.core.exception_handlers import (
    EXCEPTION_STATUS_MAP,
    _field_path,
    _get_request_id,
    application_error_handler,
    status_for,
    unhandled_exception_handler,
    validation_error_handler,
)
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


def make_request(request_id: str | None = "req-123") -> MagicMock:
    request = MagicMock(spec=Request)
    request.state = MagicMock()
    if request_id is None:
        del request.state.request_id
    else:
        request.state.request_id = request_id
    request.headers = {}
    request.url.path = "/api/tasks/t-1/withdraw"
    request.method = "POST"
    return request


def body_of(response) -> dict:
    return json.loads(response.body)


class TestExceptionStatusMapping:
    """Tests for exception to HTTP status code mapping."""

    def test_client_errors(self):
        assert EXCEPTION_STATUS_MAP[NotFoundError] == 404
        assert EXCEPTION_STATUS_MAP[ValidationError] == 400
        assert EXCEPTION_STATUS_MAP[InvalidStateError] == 400
        assert EXCEPTION_STATUS_MAP[AuthenticationError] == 401
        assert EXCEPTION_STATUS_MAP[AuthorizationError] == 403
        assert EXCEPTION_STATUS_MAP[ConflictError] == 409
        assert EXCEPTION_STATUS_MAP[RateLimitError] == 429

    def test_server_errors(self):
        assert EXCEPTION_STATUS_MAP[ExternalServiceError] == 502
        assert EXCEPTION_STATUS_MAP[DatabaseError] == 500

    def test_subclass_uses_parent_status(self):
        """Should walk the class hierarchy for unmapped subclasses."""

        class TaskGoneError(NotFoundError):
            pass

        assert status_for(TaskGoneError()) == 404

    def test_base_error_is_500(self):
        assert status_for(ApplicationError("boom")) == 500


class TestExceptionDefaults:
    def test_default_message_and_code(self):
        exc = NotFoundError()

        assert exc.code == "RES_NOT_FOUND"
        assert exc.message

    def test_custom_code_overrides_default(self):
        exc = ValidationError("Inappropriate language detected", code="VAL_PROFANITY")

        assert exc.code == "VAL_PROFANITY"
        assert str(exc.message) == "Inappropriate language detected"


class TestGetRequestId:
    """Tests for request ID extraction."""

    def test_extracts_from_request_state(self):
        assert _get_request_id(make_request("state-123")) == "state-123"

    def test_falls_back_to_header(self):
        request = make_request(None)
        request.headers = {"x-request-id": "header-456"}

        assert _get_request_id(request) == "header-456"


class TestFieldPath:
    def test_drops_location_prefix_and_camelizes(self):
        assert _field_path(("body", "confirmation_data", "rating")) == "confirmationData.rating"

    def test_keeps_list_indexes(self):
        assert _field_path(("body", "items", 0, "budget_min")) == "items.0.budgetMin"

    def test_query_parameter(self):
        assert _field_path(("query", "mode")) == "mode"


class TestApplicationErrorHandler:
    async def test_renders_error_envelope(self):
        response = await application_error_handler(
            make_request(),
            RateLimitError("Withdrawal limit reached", details={"limit": 2}),
        )

        body = body_of(response)
        assert response.status_code == 429
        assert body["success"] is False
        assert body["error"] == {
            "code": "RATE_LIMITED",
            "message": "Withdrawal limit reached",
            "details": {"limit": 2},
        }
        assert body["metadata"]["request_id"] == "req-123"

    async def test_empty_details_are_null(self):
        response = await application_error_handler(make_request(), NotFoundError("Task not found"))

        assert body_of(response)["error"]["details"] is None


class TestValidationErrorHandler:
    async def test_reports_each_field(self):
        exc = RequestValidationError([
            {"loc": ("body", "telegram_id"), "msg": "Field required", "type": "missing"},
            {"loc": ("query", "limit"), "msg": "Input should be less than or equal to 100", "type": "less_than_equal"},
        ])

        response = await validation_error_handler(make_request(), exc)

        body = body_of(response)
        assert response.status_code == 422
        assert body["error"]["code"] == "VAL_REQUEST_INVALID"
        fields = [item["field"] for item in body["error"]["details"]["validation_errors"]]
        assert fields == ["telegramId", "limit"]


class TestUnhandledExceptionHandler:
    async def test_hides_details_by_default(self, features):
        features(api_detailed_errors=False)

        response = await unhandled_exception_handler(make_request(), RuntimeError("secret detail"))

        body = body_of(response)
        assert response.status_code == 500
        assert body["error"]["code"] == "SYS_INTERNAL_ERROR"
        assert "secret detail" not in response.body.decode()

    async def test_includes_details_when_enabled(self, features):
        features(api_detailed_errors=True)

        response = await unhandled_exception_handler(make_request(), RuntimeError("boom"))

        assert body_of(response)["error"]["details"] == {"exception_type": "RuntimeError", "exception": "boom"}
