"""
Unit Tests for Health Check Endpoints.

Tests the health check functionality including:
- Liveness check (/health)
- Readiness check (/health/ready)
- Detailed health check (/health/detailed)
- Database connectivity check and its timeout
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException

from trudify.backend.api.health import (
    _run_checks,
    check_database,
    detailed_health_check,
    health_check,
    readiness_check,
)

HEALTHY = {"status": "healthy", "latency_ms": 2}
UNHEALTHY = {"status": "unhealthy", "error": "refused"}


def session_factory(session: AsyncMock) -> MagicMock:
    """get_session_factory() stand-in whose sessions are async context managers."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=MagicMock(return_value=context))


class TestHealthCheck:
    async def test_health_returns_healthy(self):
        assert await health_check() == {"status": "healthy"}


class TestCheckDatabase:
    async def test_healthy_on_successful_query(self):
        session = AsyncMock()

        with patch("trudify.backend.core.database.get_session_factory", session_factory(session)):
            result = await check_database()

        assert result["status"] == "healthy"
        assert result["latency_ms"] >= 0
        session.execute.assert_awaited_once()

    async def test_unhealthy_on_error(self):
        session = AsyncMock()
        session.execute.side_effect = ConnectionRefusedError("refused")

        with patch("trudify.backend.core.database.get_session_factory", session_factory(session)):
            result = await check_database()

        assert result == {"status": "unhealthy", "error": "refused"}


class TestRunChecks:
    async def test_times_out(self, monkeypatch):
        from trudify.backend.core.config import get_app_config

        monkeypatch.setattr(get_app_config().application.timeouts, "database", 0)

        async def slow():
            await asyncio.sleep(1)
            return HEALTHY

        with patch("trudify.backend.api.health.check_database", slow):
            checks = await _run_checks()

        assert checks["database"]["status"] == "unhealthy"
        assert "timed out" in checks["database"]["error"]


class TestReadinessCheck:
    async def test_ready(self):
        with patch("trudify.backend.api.health.check_database", AsyncMock(return_value=HEALTHY)):
            result = await readiness_check()

        assert result["status"] == "healthy"

    async def test_not_ready_raises_503(self):
        with patch("trudify.backend.api.health.check_database", AsyncMock(return_value=UNHEALTHY)):
            with pytest.raises(HTTPException) as exc_info:
                await readiness_check()

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail["checks"]["database"] == UNHEALTHY


class TestDetailedHealthCheck:
    async def test_reports_unhealthy_component(self):
        with patch("trudify.backend.api.health.check_database", AsyncMock(return_value=UNHEALTHY)):
            result = await detailed_health_check()

        assert result["status"] == "unhealthy"
        assert result["application"]["name"] == "Trudify"
        assert result["channels"]["telegram"] is True
