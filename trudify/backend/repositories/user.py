"""
User Repository.
"""

from sqlalchemy import select

from trudify.backend.models.user import User
from trudify.backend.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    model = User

    async def get_by_telegram_id(self, telegram_id: int) -> User | None:
        result = await self.session.execute(
            select(User).where(User.telegram_id == telegram_id)
        )
        return result.scalar_one_or_none()

    async def set_rating_stats(
        self,
        user_id: str,
        tasks_completed: int,
        average_rating: float | None,
        total_reviews: int,
    ) -> int:
        return await self.update_where(
            user_id,
            {},
            tasks_completed=tasks_completed,
            average_rating=average_rating,
            total_reviews=total_reviews,
        )
