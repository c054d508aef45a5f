"""
Notification Repository.
"""

from sqlalchemy import func, select

from trudify.backend.models.notification import Notification, NotificationState
from trudify.backend.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification model."""

    model = Notification

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[Notification]:
        result = await self.session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.state == NotificationState.SENT.value)
        )
        return result.scalar_one()

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        rowcount = await self.update_where(
            notification_id,
            {"user_id": user_id, "state": NotificationState.SENT.value},
            state=NotificationState.READ.value,
        )
        return rowcount == 1
