"""
Telegram Account Link Service.

Links a Trudify account to a Telegram chat, either automatically through
the bot's /start deep link or manually from the web profile.

/start outcomes:
- no parameter, bad parameter, or an unusable token: manual flow, a
  localized greeting followed by the chat id in <code> for one-tap copy
- valid token, chat already linked to another account: a single
  "already connected" reply, nothing is written
- valid token otherwise: token consumed, chat linked, success reply

The service only computes replies and writes rows; sending is left to the
bot handler.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.config import get_app_config
from trudify.backend.core.exceptions import ConflictError, ValidationError
from trudify.backend.core.i18n import default_locale, normalize_locale, translate, translate_html
from trudify.backend.core.utils import utc_now
from trudify.backend.models.user import User
from trudify.backend.repositories.token import ConnectionTokenRepository
from trudify.backend.repositories.user import UserRepository
from trudify.backend.services.base import BaseService

_START_PARAM = re.compile(r"^(?P<locale>[A-Za-z]{2})_(?P<token>[A-Za-z0-9]+)$")

TELEGRAM_CHANNEL = "telegram"


class StartOutcome(str, Enum):
    MANUAL = "manual"
    CONNECTED = "connected"
    ALREADY_CONNECTED = "already_connected"


@dataclass
class TelegramProfile:
    """Identity fields of the Telegram user sending the command."""

    chat_id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


@dataclass
class StartResult:
    outcome: StartOutcome
    locale: str
    replies: list[str] = field(default_factory=list)
    user_id: str | None = None


def parse_start_param(param: str | None) -> tuple[str, str | None]:
    """
    Split a /start parameter into (locale, token).

    The token is returned only for the ``{locale}_{token}`` form with a
    token long enough to be a connection token.
    """
    if not param:
        return default_locale(), None
    match = _START_PARAM.match(param.strip())
    if match is None:
        return default_locale(), None
    token = match.group("token")
    if len(token) < get_app_config().telegram.min_connect_token_length:
        return normalize_locale(match.group("locale")), None
    return normalize_locale(match.group("locale")), token


class TelegramLinkService(BaseService):
    """Connect Telegram chats to user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.connection_tokens = ConnectionTokenRepository(session)

    def manual_flow(self, locale: str, chat_id: int) -> StartResult:
        return StartResult(
            outcome=StartOutcome.MANUAL,
            locale=locale,
            replies=[
                translate(locale, "bot.greeting"),
                translate(locale, "bot.chat_id", {"chatId": chat_id}),
            ],
        )

    async def handle_start(self, profile: TelegramProfile, param: str | None) -> StartResult:
        locale, token = parse_start_param(param)
        if token is not None:
            result = await self._auto_connect(profile, token, locale)
            if result is not None:
                return result
        return self.manual_flow(locale, profile.chat_id)

    async def _auto_connect(self, profile: TelegramProfile, token: str, locale: str) -> StartResult | None:
        connection_token = await self.connection_tokens.get_by_token(token)
        if connection_token is None:
            self._log_debug("Connection token not found", chat_id=profile.chat_id)
            return None
        if connection_token.expires_at <= utc_now():
            self._log_debug("Connection token expired", token_id=connection_token.id)
            return None
        if connection_token.used:
            self._log_debug("Connection token already used", token_id=connection_token.id)
            return None

        locale = normalize_locale(connection_token.locale or locale)

        linked = await self.users.get_by_telegram_id(profile.chat_id)
        if linked is not None and linked.id != connection_token.user_id:
            self._logger.warning(
                "Telegram chat already linked to another user",
                extra={"chat_id": profile.chat_id, "linked_user_id": linked.id},
            )
            return StartResult(
                outcome=StartOutcome.ALREADY_CONNECTED,
                locale=locale,
                replies=[translate(locale, "bot.already_connected")],
            )

        user = await self.users.get_by_id_or_none(connection_token.user_id)
        if user is None:
            return None

        if not await self.connection_tokens.consume(connection_token.id):
            self._log_debug("Connection token consumed concurrently", token_id=connection_token.id)
            return None

        await self._link(user, profile)
        self._log_operation("Telegram connected via deep link", user_id=user.id, chat_id=profile.chat_id)
        return StartResult(
            outcome=StartOutcome.CONNECTED,
            locale=locale,
            replies=[translate_html(locale, "bot.connected", {"userName": user.full_name or ""})],
            user_id=user.id,
        )

    async def connect_manually(self, actor: User | None, telegram_id: str | int) -> User:
        """Link the caller to a chat id copied from the bot's manual flow."""
        user = self._require_actor(actor)
        try:
            chat_id = int(telegram_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid Telegram ID format", details={"telegramId": str(telegram_id)})

        linked = await self.users.get_by_telegram_id(chat_id)
        if linked is not None and linked.id != user.id:
            raise ConflictError("This Telegram account is already connected to another user")

        await self._link(user, TelegramProfile(chat_id=chat_id))
        self._log_operation("Telegram connected manually", user_id=user.id, chat_id=chat_id)
        return user

    async def _link(self, user: User, profile: TelegramProfile) -> None:
        values = {
            "telegram_id": profile.chat_id,
            "preferred_notification_channel": TELEGRAM_CHANNEL,
        }
        # Manual linking knows only the chat id; keep whatever names are stored
        if profile.username or profile.first_name or profile.last_name:
            values.update(
                telegram_username=profile.username,
                telegram_first_name=profile.first_name,
                telegram_last_name=profile.last_name,
            )
        await self._execute_db_operation("link_telegram", self.users.update_where(user.id, {}, **values))
