"""
FastAPI Dependencies.

Shared dependencies for request handling: database session, request id,
locale and caller identity.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.config import get_app_config
from trudify.backend.core.database import get_db_session
from trudify.backend.core.exceptions import AuthenticationError
from trudify.backend.core.i18n import default_locale
from trudify.backend.core.logging import get_logger
from trudify.backend.core.security import create_access_token, decode_token
from trudify.backend.core.utils import utc_now
from trudify.backend.models.user import User
from trudify.backend.repositories.token import SessionTokenRepository
from trudify.backend.repositories.user import UserRepository

logger = get_logger(__name__)

NOTIFICATION_TOKEN_SCHEME = "notificationtoken"
BEARER_SCHEME = "bearer"

# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    """
    Extract or generate request ID from headers.

    Used for request tracing and correlation.
    """
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def get_locale(request: Request) -> str:
    """Locale negotiated by RequestContextMiddleware."""
    return getattr(request.state, "locale", None) or default_locale()


Locale = Annotated[str, Depends(get_locale)]


async def authenticate_request(request: Request, response: Response, db: DbSession) -> User | None:
    """
    Resolve the caller from request credentials.

    Accepted, in order:
    - ``Authorization: NotificationToken <token>`` (auto-login link, single use;
      a session cookie is set on the response so later requests stay signed in)
    - ``Authorization: Bearer <jwt>``
    - the session cookie holding the same JWT

    Missing or invalid credentials resolve to None (anonymous).
    """
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    scheme = scheme.lower()
    credentials = credentials.strip()

    if scheme == NOTIFICATION_TOKEN_SCHEME and credentials:
        return await _user_from_notification_token(db, credentials, response)

    if scheme == BEARER_SCHEME and credentials:
        token = credentials
    else:
        token = request.cookies.get(get_app_config().security.session_cookie_name)

    if not token:
        return None

    try:
        payload = decode_token(token)
    except AuthenticationError:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return await UserRepository(db).get_by_id_or_none(user_id)


async def _user_from_notification_token(db: AsyncSession, token: str, response: Response) -> User | None:
    tokens = SessionTokenRepository(db)
    session_token = await tokens.get_by_token(token)
    if session_token is None:
        logger.debug("Unknown notification session token")
        return None

    now = utc_now()
    if session_token.expires_at <= now:
        logger.debug("Expired notification session token", extra={"user_id": session_token.user_id})
        return None
    if not await tokens.consume(session_token.id, now):
        logger.debug("Notification session token already used", extra={"user_id": session_token.user_id})
        return None

    user = await UserRepository(db).get_by_id_or_none(session_token.user_id)
    if user is not None:
        set_session_cookie(response, user.id)
        logger.info(
            "Signed in from notification link",
            extra={"user_id": user.id, "channel": session_token.notification_channel},
        )
    return user


def set_session_cookie(response: Response, user_id: str) -> None:
    """Issue the web session JWT as an HttpOnly cookie."""
    app_config = get_app_config()
    response.set_cookie(
        key=app_config.security.session_cookie_name,
        value=create_access_token({"sub": user_id}),
        max_age=app_config.security.jwt.access_token_expire_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=app_config.application.environment == "production",
    )


OptionalUser = Annotated[User | None, Depends(authenticate_request)]


async def require_user(user: OptionalUser) -> User:
    """Reject anonymous callers with 401."""
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


CurrentUser = Annotated[User, Depends(require_user)]
