"""
User Model.

A marketplace account. The same row serves customers and professionals;
`user_type` records the primary role chosen at signup.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trudify.backend.models.base import Base, TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, Base):
    """Marketplace user with profile, rating counters and notification settings."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_type: Mapped[str] = mapped_column(String(32), default="customer", nullable=False)

    # Public profile
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    neighborhood: Mapped[str | None] = mapped_column(String(128), nullable=True)
    professional_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_categories: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    years_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hourly_rate_bgn: Mapped[float | None] = mapped_column(Float, nullable=True)
    availability_status: Mapped[str] = mapped_column(String(32), default="available", nullable=False)
    response_time_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_phone_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Counters recomputed when tasks are confirmed complete
    average_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tasks_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Localization and notification routing
    preferred_language: Mapped[str | None] = mapped_column(String(8), nullable=True)
    notification_preferences: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    preferred_notification_channel: Mapped[str] = mapped_column(
        String(16), default="in_app", nullable=False,
    )

    # Linked Telegram identity
    telegram_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True, index=True)
    telegram_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    telegram_first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    telegram_last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
