"""
Task Model.

A unit of work posted by a customer. Status moves through
open → in_progress → pending_customer_confirmation → completed,
with withdraw (back to open), reject (back to in_progress) and cancel.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trudify.backend.models.base import Base, TimestampMixin, UUIDMixin


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING_CUSTOMER_CONFIRMATION = "pending_customer_confirmation"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BudgetType(str, Enum):
    FIXED = "fixed"
    RANGE = "range"


class Task(UUIDMixin, TimestampMixin, Base):
    """Task database model."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    subcategory: Mapped[str | None] = mapped_column(String(64), nullable=True)
    city: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    neighborhood: Mapped[str | None] = mapped_column(String(128), nullable=True)

    budget_min_bgn: Mapped[float | None] = mapped_column(Float, nullable=True)
    budget_max_bgn: Mapped[float | None] = mapped_column(Float, nullable=True)
    budget_type: Mapped[str] = mapped_column(String(16), default=BudgetType.FIXED.value, nullable=False)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    status: Mapped[str] = mapped_column(
        String(40), default=TaskStatus.OPEN.value, nullable=False, index=True,
    )
    customer_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    selected_professional_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True,
    )
    reviewed_by_customer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    completed_by_professional_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    confirmed_by_customer_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, status={self.status!r})>"
