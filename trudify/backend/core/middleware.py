"""
Request context.

Every request gets a request id (propagated from X-Request-ID or generated),
the calling frontend (X-Frontend-ID) and a UI locale. The locale is chosen
from ``?lang=``, then X-Locale, then Accept-Language, falling back to the
default locale; error messages and notification texts use it.

The values are stored on request.state and bound to the structlog context
until the response is sent. X-Request-ID and X-Response-Time are echoed on
the response.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from trudify.backend.core.i18n import negotiate_locale
from trudify.backend.core.logging import get_logger

logger = get_logger(__name__)

KNOWN_FRONTENDS = frozenset({"web", "mobile", "telegram", "api", "internal"})
UNKNOWN_FRONTEND = "unknown"


def frontend_of(request: Request) -> str:
    frontend = request.headers.get("X-Frontend-ID", UNKNOWN_FRONTEND).lower()
    return frontend if frontend in KNOWN_FRONTENDS else UNKNOWN_FRONTEND


def locale_of(request: Request) -> str:
    return negotiate_locale(
        request.query_params.get("lang")
        or request.headers.get("X-Locale")
        or request.headers.get("Accept-Language")
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        frontend = frontend_of(request)
        locale = locale_of(request)

        request.state.request_id = request_id
        request.state.frontend = frontend
        request.state.locale = locale

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            frontend=frontend,
            locale=locale,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = _elapsed_ms(started)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"
            logger.debug("Request completed", extra={"status_code": response.status_code, "duration_ms": duration_ms})
            return response
        except Exception as exc:
            logger.error(
                "Request failed with exception",
                extra={"duration_ms": _elapsed_ms(started), "error_type": type(exc).__name__},
            )
            raise
        finally:
            # Context vars must not leak into the next request on this task
            structlog.contextvars.clear_contextvars()


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
