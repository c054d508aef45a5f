"""
Health endpoints for the load balancer and for operators.

/health answers as long as the process is up. /health/ready answers 503
when PostgreSQL cannot run ``SELECT 1`` within the configured database
timeout. /health/detailed adds the application identity and which
notification channels are switched on; it never fails with 503.
"""

import asyncio
import time
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from trudify.backend.core.config import get_app_config
from trudify.backend.core.logging import get_logger
from trudify.backend.core.utils import utc_now

router = APIRouter()
logger = get_logger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


async def check_database() -> dict[str, Any]:
    from trudify.backend.core.database import get_session_factory

    started = time.perf_counter()
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": UNHEALTHY, "error": str(e)}
    return {"status": HEALTHY, "latency_ms": int((time.perf_counter() - started) * 1000)}


async def _run_checks() -> dict[str, dict[str, Any]]:
    timeout = get_app_config().application.timeouts.database
    try:
        async with asyncio.timeout(timeout):
            database = await check_database()
    except TimeoutError:
        database = {"status": UNHEALTHY, "error": f"timed out after {timeout}s"}
    return {"database": database}


def _overall(checks: dict[str, dict[str, Any]]) -> str:
    failing = [name for name, check in checks.items() if check.get("status") == UNHEALTHY]
    return UNHEALTHY if failing else HEALTHY


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": HEALTHY}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    checks = await _run_checks()
    body = {"status": _overall(checks), "checks": checks, "timestamp": utc_now().isoformat()}

    if body["status"] == UNHEALTHY:
        logger.warning("Readiness check failed", extra={"checks": checks})
        raise HTTPException(status_code=503, detail=body)
    return body


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    config = get_app_config()
    checks = await _run_checks()

    return {
        "status": _overall(checks),
        "application": {
            "name": config.application.name,
            "env": config.application.environment,
            "debug": config.application.debug,
            "version": config.application.version,
            "locales": config.application.locales.supported,
        },
        "channels": {"telegram": config.features.channel_telegram_enabled},
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }
