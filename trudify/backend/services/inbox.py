"""
Notification Inbox Service.

Read side of notifications for the signed-in user.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.exceptions import NotFoundError
from trudify.backend.models.notification import Notification, NotificationState
from trudify.backend.models.user import User
from trudify.backend.repositories.notification import NotificationRepository
from trudify.backend.services.base import BaseService


class InboxService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.notifications = NotificationRepository(session)

    async def list_notifications(
        self,
        actor: User | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Notification], int]:
        """The caller's notifications, newest first, with their unread count."""
        user = self._require_actor(actor)
        items = await self.notifications.list_for_user(user.id, limit=limit, offset=offset)
        unread = await self.notifications.count_unread(user.id)
        return items, unread

    async def mark_read(self, notification_id: str, actor: User | None) -> Notification:
        user = self._require_actor(actor)
        notification = await self.notifications.get_by_id_or_none(notification_id)
        # Other users' notifications are reported as missing
        if notification is None or notification.user_id != user.id:
            raise NotFoundError("Notification not found")

        if notification.state != NotificationState.READ:
            await self.notifications.mark_read(notification.id, user.id)
        return notification
