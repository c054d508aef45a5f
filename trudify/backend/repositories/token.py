"""
Token Repositories.
"""

from datetime import datetime

from sqlalchemy import select

from trudify.backend.models.token import NotificationSessionToken, TelegramConnectionToken
from trudify.backend.repositories.base import BaseRepository


class ConnectionTokenRepository(BaseRepository[TelegramConnectionToken]):
    """Repository for Telegram connection tokens."""

    model = TelegramConnectionToken

    async def get_by_token(self, token: str) -> TelegramConnectionToken | None:
        result = await self.session.execute(
            select(TelegramConnectionToken).where(TelegramConnectionToken.token == token)
        )
        return result.scalar_one_or_none()

    async def consume(self, token_id: str) -> bool:
        """Mark a token used; False if it was already consumed."""
        rowcount = await self.update_where(token_id, {"used": False}, used=True)
        return rowcount == 1


class SessionTokenRepository(BaseRepository[NotificationSessionToken]):
    """Repository for notification auto-login tokens."""

    model = NotificationSessionToken

    async def get_by_token(self, token: str) -> NotificationSessionToken | None:
        result = await self.session.execute(
            select(NotificationSessionToken).where(NotificationSessionToken.token == token)
        )
        return result.scalar_one_or_none()

    async def consume(self, token_id: str, now: datetime) -> bool:
        """Record the first use of a token; False if it was already used."""
        rowcount = await self.update_where(token_id, {"used_at": None}, used_at=now)
        return rowcount == 1
