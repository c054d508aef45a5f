"""
Professional Profile Service.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.exceptions import NotFoundError
from trudify.backend.core.utils import is_valid_uuid
from trudify.backend.repositories.review import ReviewRepository
from trudify.backend.repositories.task import TaskRepository
from trudify.backend.repositories.user import UserRepository
from trudify.backend.schemas.professional import ProfessionalProfile
from trudify.backend.services.base import BaseService


class ProfessionalService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.tasks = TaskRepository(session)
        self.reviews = ReviewRepository(session)

    async def get_profile(self, professional_id: str, locale: str) -> ProfessionalProfile:
        # Malformed ids (asset probes, typos) are reported as missing
        if not is_valid_uuid(professional_id):
            raise NotFoundError("Professional not found")

        user = await self.users.get_by_id_or_none(professional_id)
        if user is None:
            raise NotFoundError("Professional not found")

        completed = await self.tasks.list_completed_for_professional(user.id)
        reviews = await self.reviews.list_for_reviewee(user.id)
        return ProfessionalProfile.from_user(user, completed, reviews, locale)
