"""
Task Repository.

Data access for tasks. Status transitions go through ``transition``,
which writes only if the task is still in the expected status.
"""

from typing import Any

from sqlalchemy import func, select

from trudify.backend.models.task import Task, TaskStatus
from trudify.backend.repositories.base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Repository for Task model."""

    model = Task

    async def transition(
        self,
        task_id: str,
        from_status: TaskStatus,
        to_status: TaskStatus,
        expected: dict[str, Any] | None = None,
        **values: Any,
    ) -> bool:
        """
        Move a task between statuses atomically.

        Returns False when the task is no longer in ``from_status`` (or any
        column in ``expected`` no longer matches).
        """
        conditions = {"status": from_status.value, **(expected or {})}
        rowcount = await self.update_where(task_id, conditions, status=to_status.value, **values)
        return rowcount == 1

    async def list_open(
        self,
        category: str | None = None,
        city: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Task], int]:
        """Open tasks, newest first, with the total count for pagination."""
        conditions = [Task.status == TaskStatus.OPEN.value]
        if category:
            conditions.append(Task.category == category)
        if city:
            conditions.append(Task.city == city)
        return await self._page(conditions, limit, offset)

    async def list_by_customer(
        self,
        customer_id: str,
        statuses: list[str] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Task], int]:
        conditions = [Task.customer_id == customer_id]
        if statuses:
            conditions.append(Task.status.in_(statuses))
        return await self._page(conditions, limit, offset)

    async def list_recent_open(self, limit: int) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.status == TaskStatus.OPEN.value)
            .order_by(Task.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_completed_for_professional(self, professional_id: str, limit: int = 20) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.selected_professional_id == professional_id)
            .where(Task.status == TaskStatus.COMPLETED.value)
            .order_by(Task.completed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_completed_for_professional(self, professional_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Task)
            .where(Task.selected_professional_id == professional_id)
            .where(Task.status == TaskStatus.COMPLETED.value)
        )
        return result.scalar_one()

    async def _page(self, conditions: list[Any], limit: int, offset: int) -> tuple[list[Task], int]:
        result = await self.session.execute(
            select(Task)
            .where(*conditions)
            .order_by(Task.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await self.session.execute(
            select(func.count()).select_from(Task).where(*conditions)
        )
        return list(result.scalars().all()), total.scalar_one()
