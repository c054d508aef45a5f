"""
Credentials.

A logged-in browser holds a session JWT (cookie or Bearer header) whose
``sub`` is the user id. Two kinds of single-purpose random tokens are minted
here as well: the Telegram connection token embedded in the /start deep
link, and the session token carried by notification auto-login links.
"""

import hmac
import secrets
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt

from trudify.backend.core.config import get_app_config, get_settings
from trudify.backend.core.exceptions import AuthenticationError
from trudify.backend.core.logging import get_logger
from trudify.backend.core.utils import utc_now

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
# Telegram deep-link payloads are limited to 64 chars of [A-Za-z0-9_-]
CONNECTION_TOKEN_BYTES = 12
SESSION_TOKEN_BYTES = 32


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Sign a session JWT; lifetime defaults to access_token_expire_minutes."""
    jwt_config = get_app_config().security.jwt
    lifetime = expires_delta or timedelta(minutes=jwt_config.access_token_expire_minutes)

    claims = {**data, "exp": utc_now() + lifetime, "type": ACCESS_TOKEN_TYPE, "aud": jwt_config.audience}
    return jwt.encode(claims, get_settings().jwt_secret, algorithm=jwt_config.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify signature, expiry and audience of a session JWT.

    Raises:
        AuthenticationError: Token is malformed, expired, for another
            audience, or not an access token
    """
    jwt_config = get_app_config().security.jwt
    try:
        claims = jwt.decode(
            token,
            get_settings().jwt_secret,
            algorithms=[jwt_config.algorithm],
            audience=jwt_config.audience,
        )
    except JWTError as e:
        logger.warning("Token decode failed", extra={"error": str(e)})
        raise AuthenticationError("Invalid or expired token")

    if claims.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        logger.warning("Token of wrong type presented", extra={"token_type": claims.get("type")})
        raise AuthenticationError("Invalid or expired token")
    return claims


def generate_connection_token() -> str:
    return secrets.token_hex(CONNECTION_TOKEN_BYTES)


def generate_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def secrets_match(provided: str | None, expected: str) -> bool:
    """Constant-time comparison, e.g. of the webhook secret header."""
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
