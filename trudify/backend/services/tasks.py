"""
Task Service.

Task creation and the listing modes used by the browse, dashboard and
landing pages.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.config import get_app_config
from trudify.backend.core.exceptions import NotFoundError
from trudify.backend.models.task import BudgetType, Task, TaskStatus
from trudify.backend.models.user import User
from trudify.backend.repositories.task import TaskRepository
from trudify.backend.schemas.task import TaskCreate
from trudify.backend.services.base import BaseService
from trudify.backend.services.profanity import screen_fields


class TaskService(BaseService):
    """Create and list tasks."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.tasks = TaskRepository(session)

    async def create_task(self, data: TaskCreate, actor: User | None) -> Task:
        customer = self._require_actor(actor)
        screen_fields({
            "title": data.title,
            "description": data.description,
            "requirements": data.requirements,
        })

        if data.budget_type == BudgetType.FIXED.value:
            budget_min = budget_max = data.budget_max or data.budget_min
        else:
            budget_min, budget_max = data.budget_min, data.budget_max

        task = await self._execute_db_operation(
            "create_task",
            self.tasks.create(
                title=data.title.strip(),
                description=data.description.strip(),
                requirements=data.requirements,
                category=data.category,
                subcategory=data.subcategory,
                city=data.city,
                neighborhood=data.neighborhood,
                budget_type=data.budget_type,
                budget_min_bgn=budget_min,
                budget_max_bgn=budget_max,
                is_urgent=data.urgency == "same_day",
                deadline=data.deadline,
                status=TaskStatus.OPEN.value,
                customer_id=customer.id,
            ),
        )
        self._log_operation("Task created", task_id=task.id, customer_id=customer.id, category=task.category)
        return task

    async def get_task(self, task_id: str) -> Task:
        task = await self.tasks.get_by_id_or_none(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def list_browse(
        self,
        category: str | None,
        city: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Task], int]:
        return await self.tasks.list_open(category=category, city=city, limit=limit, offset=offset)

    async def list_posted(self, actor: User | None, limit: int, offset: int) -> tuple[list[Task], int]:
        customer = self._require_actor(actor)
        return await self.tasks.list_by_customer(customer.id, limit=limit, offset=offset)

    async def list_applications(self, actor: User | None) -> tuple[list[Task], int]:
        # Professionals track their bids through the applications inbox
        self._require_actor(actor)
        return [], 0

    async def list_featured(self) -> list[Task]:
        """
        Curated landing-page selection.

        Newest open tasks, one per category first so the set is varied,
        then topped up with the remaining newest tasks.
        """
        featured_config = get_app_config().lifecycle.featured
        candidates = await self.tasks.list_recent_open(featured_config.candidate_pool)

        picked: list[Task] = []
        seen_categories: set[str] = set()
        for task in candidates:
            if task.category not in seen_categories:
                picked.append(task)
                seen_categories.add(task.category)
            if len(picked) == featured_config.limit:
                return picked

        for task in candidates:
            if len(picked) == featured_config.limit:
                break
            if task not in picked:
                picked.append(task)
        return picked
