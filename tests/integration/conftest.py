"""
Integration Test Fixtures.

HTTP tests against the real application and an in-memory database. The
Telegram Bot API is never called: the shared sender is replaced with a mock.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.database import get_db_session
from trudify.backend.models.user import User
from trudify.telegram.services.sender import SendResult


@pytest.fixture(autouse=True)
def telegram_sender() -> MagicMock:
    """Mocked outbound sender; every send succeeds unless a test says otherwise."""
    sender = MagicMock()
    sender.send = AsyncMock(
        side_effect=lambda chat_id, text, **kwargs: SendResult(success=True, chat_id=chat_id, message_id=1)
    )
    with patch("trudify.telegram.services.sender.get_telegram_sender", return_value=sender):
        yield sender


@pytest.fixture
async def app(db_session: AsyncSession) -> Any:
    """Application wired to the test database session."""
    from trudify.backend.main import create_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    application = create_app()
    application.dependency_overrides[get_db_session] = override_get_db_session
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """
    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """
    Bearer headers for a user.

    Usage:
        response = await client.post(url, headers=auth_headers(customer))
    """
    from trudify.backend.core.security import create_access_token

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}

    return _headers


def _envelope(response: Any, expected_status: int) -> dict[str, Any]:
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}: {response.text}"
    )
    return response.json()


class ApiAssertions:
    """Checks on the success/error envelope every API response uses."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        body = _envelope(response, expected_status)
        assert body["success"] is True, body
        assert body.get("error") is None, body
        return body

    @staticmethod
    def assert_error(response: Any, expected_status: int, expected_code: str | None = None) -> dict[str, Any]:
        body = _envelope(response, expected_status)
        assert body["success"] is False, body
        assert body["error"], body
        if expected_code is not None:
            assert body["error"]["code"] == expected_code, body["error"]
        return body

    @staticmethod
    def assert_validation_error(response: Any, field: str | None = None) -> dict[str, Any]:
        """422 from request parsing; ``field`` is the camelCase name reported."""
        body = ApiAssertions.assert_error(response, 422, "VAL_REQUEST_INVALID")
        if field is not None:
            reported = [item["field"] for item in body["error"]["details"]["validation_errors"]]
            assert any(field in name for name in reported), reported
        return body


@pytest.fixture
def api() -> ApiAssertions:
    return ApiAssertions()
