"""
Application Model.

A professional's bid on a task.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trudify.backend.models.base import Base, TimestampMixin, UUIDMixin


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"
    REMOVED_BY_CUSTOMER = "removed_by_customer"


class TimingImpact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Application(UUIDMixin, TimestampMixin, Base):
    """Application database model."""

    __tablename__ = "applications"

    task_id: Mapped[str] = mapped_column(ForeignKey("tasks.id"), nullable=False, index=True)
    professional_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    proposed_price_bgn: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    availability_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    status: Mapped[str] = mapped_column(
        String(24), default=ApplicationStatus.PENDING.value, nullable=False, index=True,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    withdrawal_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    withdrawal_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    withdrawal_timing_impact: Mapped[str | None] = mapped_column(String(8), nullable=True)

    removed_by_customer_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    removal_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    removal_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    days_worked_before_removal: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, task_id={self.task_id}, status={self.status!r})>"
