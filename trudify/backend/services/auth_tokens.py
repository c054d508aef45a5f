"""
Auth Token Service.

Issues the two kinds of short-lived credentials the notification flows
depend on:

- notification session tokens, embedded in notification links so the
  recipient lands on the site already signed in (single use, exchanged
  for a session cookie on first request);
- Telegram connection tokens, carried by the bot's /start deep link and
  consumed once by the link flow.
"""

from datetime import timedelta
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.config import get_app_config, get_site_url
from trudify.backend.core.i18n import normalize_locale
from trudify.backend.core.security import generate_connection_token, generate_session_token
from trudify.backend.core.utils import utc_now
from trudify.backend.models.token import NotificationSessionToken, TelegramConnectionToken
from trudify.backend.repositories.token import ConnectionTokenRepository, SessionTokenRepository
from trudify.backend.services.base import BaseService

AUTO_LOGIN_PARAM = "notificationSession"


class AuthTokenService(BaseService):
    """Issue auto-login and Telegram connection tokens."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.session_tokens = SessionTokenRepository(session)
        self.connection_tokens = ConnectionTokenRepository(session)

    async def create_session_token(
        self,
        user_id: str,
        channel: str,
        redirect_url: str | None = None,
    ) -> NotificationSessionToken:
        lifetime = get_app_config().security.notification_session.expire_days
        return await self._execute_db_operation(
            "create_session_token",
            self.session_tokens.create(
                token=generate_session_token(),
                user_id=user_id,
                notification_channel=channel,
                redirect_url=redirect_url,
                expires_at=utc_now() + timedelta(days=lifetime),
            ),
        )

    async def build_auto_login_url(self, user_id: str, path: str, channel: str) -> str:
        """
        Absolute URL for ``path`` carrying a fresh notification session token.

        Example: /bg/tasks/42 -> https://trudify.com/bg/tasks/42?notificationSession=...
        """
        session_token = await self.create_session_token(user_id, channel, redirect_url=path)
        return append_query(f"{get_site_url()}{path}", {AUTO_LOGIN_PARAM: session_token.token})

    async def create_connection_token(self, user_id: str, locale: str | None) -> TelegramConnectionToken:
        lifetime = get_app_config().security.connection_token.expire_minutes
        token = await self._execute_db_operation(
            "create_connection_token",
            self.connection_tokens.create(
                token=generate_connection_token(),
                user_id=user_id,
                locale=normalize_locale(locale),
                used=False,
                expires_at=utc_now() + timedelta(minutes=lifetime),
            ),
        )
        self._log_operation("Telegram connection token issued", user_id=user_id)
        return token


def append_query(url: str, params: dict[str, str]) -> str:
    """Add query parameters to a URL, keeping any it already has."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True) + list(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def telegram_deep_link(locale: str, token: str) -> str:
    bot_username = get_app_config().telegram.bot_username
    return f"https://t.me/{bot_username}?start={locale}_{token}"
