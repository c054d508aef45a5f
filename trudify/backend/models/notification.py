"""
Notification Model.

One message targeted at one user, with its delivery channel and the
outcome of the Telegram delivery when that channel applies.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trudify.backend.models.base import Base, CreatedAtMixin, UUIDMixin


class NotificationType(str, Enum):
    APPLICATION_RECEIVED = "application_received"
    APPLICATION_ACCEPTED = "application_accepted"
    APPLICATION_REJECTED = "application_rejected"
    TASK_COMPLETED = "task_completed"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_CANCELLED = "task_cancelled"
    PROFESSIONAL_WITHDREW = "professional_withdrew"
    MESSAGE_RECEIVED = "message_received"
    PAYMENT_RECEIVED = "payment_received"
    REVIEW_RECEIVED = "review_received"
    WELCOME_MESSAGE = "welcome_message"
    WEEKLY_DIGEST = "weekly_digest"
    DEADLINE_REMINDER = "deadline_reminder"


class DeliveryChannel(str, Enum):
    IN_APP = "in_app"
    TELEGRAM = "telegram"
    BOTH = "both"

    @property
    def includes_telegram(self) -> bool:
        return self in (DeliveryChannel.TELEGRAM, DeliveryChannel.BOTH)


class NotificationState(str, Enum):
    SENT = "sent"  # unread in the inbox
    READ = "read"


class TelegramDeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class Notification(UUIDMixin, CreatedAtMixin, Base):
    """Notification database model."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    action_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    delivery_channel: Mapped[str] = mapped_column(String(16), nullable=False)
    state: Mapped[str] = mapped_column(
        String(16), default=NotificationState.SENT.value, nullable=False, index=True,
    )
    telegram_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    telegram_delivery_status: Mapped[str | None] = mapped_column(String(16), nullable=True)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type={self.type!r}, user_id={self.user_id})>"
