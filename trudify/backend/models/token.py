"""
Token Models.

TelegramConnectionToken links a web account to a Telegram chat (single use).
NotificationSessionToken backs auto-login links embedded in notifications.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from trudify.backend.models.base import Base, CreatedAtMixin, UUIDMixin


class TelegramConnectionToken(UUIDMixin, CreatedAtMixin, Base):
    """One-time credential consumed by the bot's /start deep link."""

    __tablename__ = "telegram_connection_tokens"

    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    locale: Mapped[str] = mapped_column(String(8), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class NotificationSessionToken(UUIDMixin, CreatedAtMixin, Base):
    """Auto-login credential carried by a notification link."""

    __tablename__ = "notification_session_tokens"

    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    notification_channel: Mapped[str] = mapped_column(String(16), nullable=False)
    redirect_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Set on first use; the link is exchanged for a session cookie
    used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
