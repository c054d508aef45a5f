"""
Application Repository.
"""

from datetime import datetime

from sqlalchemy import delete, func, select

from trudify.backend.models.application import Application, ApplicationStatus, TimingImpact
from trudify.backend.models.task import Task
from trudify.backend.repositories.base import BaseRepository


class ApplicationRepository(BaseRepository[Application]):
    """Repository for Application model."""

    model = Application

    async def get_for_task_and_professional(
        self,
        task_id: str,
        professional_id: str,
    ) -> Application | None:
        """
        The professional's application on a task.

        An accepted application wins over older withdrawn or rejected ones
        when a professional has applied more than once.
        """
        result = await self.session.execute(
            select(Application)
            .where(Application.task_id == task_id)
            .where(Application.professional_id == professional_id)
            .order_by(Application.created_at.desc())
        )
        applications = list(result.scalars().all())
        for application in applications:
            if application.status == ApplicationStatus.ACCEPTED:
                return application
        return applications[0] if applications else None

    async def get_accepted_for_task(self, task_id: str) -> Application | None:
        result = await self.session.execute(
            select(Application)
            .where(Application.task_id == task_id)
            .where(Application.status == ApplicationStatus.ACCEPTED.value)
        )
        return result.scalars().first()

    async def list_for_task(self, task_id: str, status: ApplicationStatus | None = None) -> list[Application]:
        stmt = select(Application).where(Application.task_id == task_id)
        if status is not None:
            stmt = stmt.where(Application.status == status.value)
        result = await self.session.execute(stmt.order_by(Application.created_at))
        return list(result.scalars().all())

    async def set_status(
        self,
        application_id: str,
        from_status: ApplicationStatus,
        to_status: ApplicationStatus,
        **values,
    ) -> bool:
        rowcount = await self.update_where(
            application_id, {"status": from_status.value}, status=to_status.value, **values,
        )
        return rowcount == 1

    async def reject_pending_for_task(self, task_id: str, now: datetime) -> list[Application]:
        """Reject every still-pending application on a task, returning them."""
        pending = await self.list_for_task(task_id, ApplicationStatus.PENDING)
        for application in pending:
            application.status = ApplicationStatus.REJECTED.value
            application.responded_at = now
        await self.session.flush()
        return pending

    async def delete_for_task(self, task_id: str, status: ApplicationStatus | None = None) -> int:
        """Delete a task's applications (optionally only those with one status)."""
        stmt = delete(Application).where(Application.task_id == task_id)
        if status is not None:
            stmt = stmt.where(Application.status == status.value)
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount

    async def count_disruptive_withdrawals(self, professional_id: str, since: datetime) -> int:
        """Withdrawals with medium or high timing impact since a point in time."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Application)
            .where(Application.professional_id == professional_id)
            .where(Application.status == ApplicationStatus.WITHDRAWN.value)
            .where(Application.withdrawn_at >= since)
            .where(Application.withdrawal_timing_impact != TimingImpact.LOW.value)
        )
        return result.scalar_one()

    async def delete_stale_for_professional(self, professional_id: str, before: datetime) -> int:
        """Delete a professional's rejected and withdrawn applications last touched before a cutoff."""
        result = await self.session.execute(
            delete(Application)
            .where(Application.professional_id == professional_id)
            .where(Application.status.in_([ApplicationStatus.REJECTED.value, ApplicationStatus.WITHDRAWN.value]))
            .where(Application.updated_at < before)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def count_removals_by_customer(self, customer_id: str, since: datetime) -> int:
        """Professionals removed from the customer's tasks since a point in time."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Application)
            .join(Task, Task.id == Application.task_id)
            .where(Task.customer_id == customer_id)
            .where(Application.status == ApplicationStatus.REMOVED_BY_CUSTOMER.value)
            .where(Application.removed_by_customer_at >= since)
        )
        return result.scalar_one()
