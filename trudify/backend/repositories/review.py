"""
Review Repository.
"""

from sqlalchemy import func, select

from trudify.backend.models.review import Review
from trudify.backend.repositories.base import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    """Repository for Review model."""

    model = Review

    async def get_for_task_and_reviewer(self, task_id: str, reviewer_id: str) -> Review | None:
        result = await self.session.execute(
            select(Review)
            .where(Review.task_id == task_id)
            .where(Review.reviewer_id == reviewer_id)
        )
        return result.scalar_one_or_none()

    async def list_for_reviewee(self, reviewee_id: str, limit: int = 20) -> list[Review]:
        result = await self.session.execute(
            select(Review)
            .where(Review.reviewee_id == reviewee_id)
            .order_by(Review.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def rating_summary(self, reviewee_id: str) -> tuple[float | None, int]:
        """Average rating and review count received by a user."""
        result = await self.session.execute(
            select(func.avg(Review.rating), func.count(Review.id))
            .where(Review.reviewee_id == reviewee_id)
        )
        average, total = result.one()
        return (round(float(average), 2) if average is not None else None), total
