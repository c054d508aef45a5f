"""
Review Model.

Rating and comment left by one party about the other after task completion.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from trudify.backend.models.base import Base, CreatedAtMixin, UUIDMixin


class ReviewType(str, Enum):
    CUSTOMER_TO_PROFESSIONAL = "customer_to_professional"


class Review(UUIDMixin, CreatedAtMixin, Base):
    """Review database model. One review per (task, reviewer)."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("task_id", "reviewer_id", name="uq_reviews_task_reviewer"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    task_id: Mapped[str] = mapped_column(ForeignKey("tasks.id"), nullable=False, index=True)
    reviewer_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    reviewee_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_type: Mapped[str] = mapped_column(
        String(32), default=ReviewType.CUSTOMER_TO_PROFESSIONAL.value, nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, task_id={self.task_id}, rating={self.rating})>"
