"""
Task Lifecycle Service.

Drives a task through its states:

    open -> in_progress -> pending_customer_confirmation -> completed
    in_progress -> open                      (professional withdraws)
    pending_customer_confirmation -> in_progress   (customer rejects completion)
    in_progress -> open                      (customer removes the professional)
    open -> cancelled                        (customer cancels)

Applications move pending -> accepted | rejected | withdrawn, and an
accepted one ends as completed, withdrawn or removed_by_customer.

Each transition runs in two phases. The primary phase checks the caller
and the current state, then writes with a conditional UPDATE that only
matches the expected status, and commits. If another request moved the
task first the UPDATE matches nothing and InvalidStateError is raised.

The follow-up phase runs best-effort side effects (cleanup, review,
counters, notifications). Each one commits on its own; a failure is
rolled back, logged and recorded in the returned TransitionOutcome, and
never undoes the primary transition.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.config import get_app_config
from trudify.backend.core.config_schema import WithdrawalSchema
from trudify.backend.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from trudify.backend.core.utils import as_naive_utc, hours_between, utc_now
from trudify.backend.models.application import Application, ApplicationStatus, TimingImpact
from trudify.backend.models.notification import DeliveryChannel, NotificationType
from trudify.backend.models.review import ReviewType
from trudify.backend.models.task import Task, TaskStatus
from trudify.backend.models.user import User
from trudify.backend.repositories.application import ApplicationRepository
from trudify.backend.repositories.review import ReviewRepository
from trudify.backend.repositories.task import TaskRepository
from trudify.backend.repositories.user import UserRepository
from trudify.backend.schemas.application import ApplicationCreate
from trudify.backend.schemas.lifecycle import (
    ApplicationReasonRequest,
    ConfirmCompletionRequest,
    RejectionReason,
    RemoveProfessionalRequest,
    WithdrawRequest,
)
from trudify.backend.services.base import BaseService
from trudify.backend.services.notifications import NotificationRouter

DEFAULT_REVIEW_RATING = 5

CONFIRM_ACTIONS = frozenset({"confirm", "reject"})

REJECTION_REASON_TEXT = {
    RejectionReason.NOT_COMPLETED: "Work not completed",
    RejectionReason.POOR_QUALITY: "Work quality does not meet expectations",
    RejectionReason.DIFFERENT_SCOPE: "Work differs from agreed scope",
    RejectionReason.OTHER: "Other issues",
}


@dataclass
class SideEffectResult:
    name: str
    success: bool
    detail: str | None = None


@dataclass
class TransitionOutcome:
    """Primary transition result plus the report of each follow-up step."""

    task: Task
    side_effects: list[SideEffectResult] = field(default_factory=list)

    @property
    def side_effects_ok(self) -> bool:
        return all(effect.success for effect in self.side_effects)

    def side_effect(self, name: str) -> SideEffectResult | None:
        return next((effect for effect in self.side_effects if effect.name == name), None)


@dataclass
class WithdrawOutcome(TransitionOutcome):
    timing_impact: TimingImpact = TimingImpact.LOW

    @property
    def counts_toward_limit(self) -> bool:
        return self.timing_impact != TimingImpact.LOW


@dataclass
class ApplicationOutcome(TransitionOutcome):
    application: Application | None = None


@dataclass
class AcceptOutcome(ApplicationOutcome):
    rejected_count: int = 0


@dataclass
class RemovalOutcome(ApplicationOutcome):
    remaining_removals: int = 0


def classify_timing_impact(
    hours_since_acceptance: float,
    low_hours: float = 2,
    medium_hours: float = 24,
) -> TimingImpact:
    """
    Disruption caused by a withdrawal, from hours elapsed since acceptance.

    Half-open intervals: [0, low) low, [low, medium) medium, [medium, inf) high.
    """
    if hours_since_acceptance < low_hours:
        return TimingImpact.LOW
    if hours_since_acceptance < medium_hours:
        return TimingImpact.MEDIUM
    return TimingImpact.HIGH


class LifecycleService(BaseService):
    """Task state transitions and their side effects."""

    def __init__(self, session: AsyncSession, notifier: NotificationRouter | None = None) -> None:
        super().__init__(session)
        self.tasks = TaskRepository(session)
        self.applications = ApplicationRepository(session)
        self.reviews = ReviewRepository(session)
        self.users = UserRepository(session)
        self.notifier = notifier or NotificationRouter(session)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_task(self, task_id: str) -> Task:
        task = await self.tasks.get_by_id_or_none(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def _commit_primary(self, operation: str) -> None:
        await self._execute_db_operation(operation, self.session.commit())

    async def _side_effect(
        self,
        outcome: TransitionOutcome,
        name: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Run one best-effort step in its own commit, recording the result."""
        try:
            detail = await func(*args, **kwargs)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            self._logger.warning(
                "Lifecycle side effect failed",
                extra={"side_effect": name, "error": str(e), "error_type": type(e).__name__},
            )
            outcome.side_effects.append(SideEffectResult(name=name, success=False, detail=str(e)))
            return None

        outcome.side_effects.append(
            SideEffectResult(name=name, success=True, detail=None if detail is None else str(detail))
        )
        return detail

    async def _notify(self, user_id: str, **kwargs: Any) -> str:
        result = await self.notifier.create_notification(user_id=user_id, **kwargs)
        if not result.success:
            raise ExternalServiceError(result.error or "Notification not created")
        return result.notification_id

    async def _display_name(self, user_id: str | None) -> str:
        if user_id is None:
            return ""
        user = await self.users.get_by_id_or_none(user_id)
        return (user.full_name if user else None) or ""

    async def _finish(self, outcome: TransitionOutcome) -> TransitionOutcome:
        # Side-effect rollbacks expire loaded rows; reload them for the response
        await self.session.refresh(outcome.task)
        if isinstance(outcome, ApplicationOutcome) and outcome.application is not None:
            await self.session.refresh(outcome.application)
        return outcome

    # =========================================================================
    # Submit application
    # =========================================================================

    async def submit_application(self, request: ApplicationCreate, actor: User | None) -> ApplicationOutcome:
        """
        Professional bids on an open task.

        Checks run in this order: caller signed in (401), task id, price
        and message present (400), price not negative (400), task exists
        (404), caller is not the owner (403), task open (400), no earlier
        application by the caller on this task (409). A price of 0 is a
        volunteer offer and is accepted.
        """
        actor = self._require_actor(actor)
        actor_id = actor.id
        self._validate_required(
            {"taskId": request.task_id, "proposedPrice": request.proposed_price, "message": request.message},
            ["taskId", "proposedPrice", "message"],
        )
        if request.proposed_price < 0:
            raise ValidationError("Proposed price cannot be negative")

        task = await self._load_task(request.task_id)
        if task.customer_id == actor_id:
            raise AuthorizationError("Cannot apply to your own task")
        if task.status != TaskStatus.OPEN:
            raise InvalidStateError("Task is not accepting applications")
        if await self.applications.get_for_task_and_professional(task.id, actor_id) is not None:
            raise ConflictError("You have already applied to this task")

        task_id, title, customer_id = task.id, task.title, task.customer_id
        application = await self._execute_db_operation(
            "submit_application",
            self.applications.create(
                task_id=task_id,
                professional_id=actor_id,
                proposed_price_bgn=request.proposed_price,
                estimated_duration_hours=request.estimated_duration_hours,
                message=request.message.strip(),
                availability_date=as_naive_utc(request.availability_date),
                status=ApplicationStatus.PENDING.value,
            ),
        )
        application_id = application.id
        await self._commit_primary("submit_application")

        outcome = ApplicationOutcome(task=task, application=application)
        self._log_operation(
            "Application submitted",
            task_id=task_id,
            application_id=application_id,
            professional_id=actor_id,
        )

        stale_days = get_app_config().lifecycle.applications.stale_after_days
        await self._side_effect(
            outcome, "delete_stale_applications",
            self.applications.delete_stale_for_professional, actor_id, utc_now() - timedelta(days=stale_days),
        )

        professional_name = await self._display_name(actor_id)
        await self._side_effect(
            outcome, "notify_customer",
            self._notify,
            customer_id,
            type=NotificationType.APPLICATION_RECEIVED,
            template_data={"taskTitle": title, "professionalName": professional_name or "Someone"},
            metadata={
                "taskId": task_id,
                "applicationId": application_id,
                "professionalId": actor_id,
                "professionalName": professional_name or None,
                "proposedPrice": request.proposed_price,
            },
            action_url=f"/tasks/{task_id}?application={application_id}",
            delivery_channel=DeliveryChannel.BOTH,
        )
        return await self._finish(outcome)

    # =========================================================================
    # Accept application
    # =========================================================================

    async def accept_application(self, application_id: str, actor: User | None) -> AcceptOutcome:
        actor = self._require_actor(actor)
        actor_id = actor.id

        application = await self._load_application(application_id)
        task = await self._load_task(application.task_id)

        self._require_party(actor, task.customer_id, "Only the task owner can accept applications")
        if application.status != ApplicationStatus.PENDING:
            raise InvalidStateError(f"Application is {application.status}, expected pending")
        if task.status != TaskStatus.OPEN:
            raise InvalidStateError(f"Task is {task.status}, expected open")

        task_id, title = task.id, task.title
        professional_id = application.professional_id
        now = utc_now()

        await self._compare_and_swap(
            "accept_application",
            self.tasks.transition(
                task_id,
                TaskStatus.OPEN,
                TaskStatus.IN_PROGRESS,
                expected={"selected_professional_id": None},
                selected_professional_id=professional_id,
            ),
            "Task is no longer open",
        )
        await self._compare_and_swap(
            "accept_application",
            self.applications.set_status(
                application.id,
                ApplicationStatus.PENDING,
                ApplicationStatus.ACCEPTED,
                accepted_at=now,
                responded_at=now,
            ),
            "Application is no longer pending",
        )
        await self._commit_primary("accept_application")

        outcome = AcceptOutcome(task=task, application=application)
        self._log_operation("Application accepted", task_id=task_id, application_id=application_id)

        rejected = await self._side_effect(
            outcome, "reject_other_applications",
            self.applications.reject_pending_for_task, task_id, now,
        ) or []
        rejected_professionals = [item.professional_id for item in rejected]
        outcome.rejected_count = len(rejected_professionals)

        customer_name = await self._display_name(actor_id)
        await self._side_effect(
            outcome, "notify_accepted_professional",
            self._notify,
            professional_id,
            type=NotificationType.APPLICATION_ACCEPTED,
            template_data={"taskTitle": title, "customerName": customer_name},
            metadata={"taskId": task_id, "applicationId": application_id},
            action_url=f"/tasks/{task_id}",
            delivery_channel=DeliveryChannel.BOTH,
        )
        for rejected_id in rejected_professionals:
            await self._side_effect(
                outcome, f"notify_rejected_professional:{rejected_id}",
                self._notify,
                rejected_id,
                type=NotificationType.APPLICATION_REJECTED,
                template_data={"taskTitle": title},
                metadata={"taskId": task_id},
                delivery_channel=DeliveryChannel.IN_APP,
            )

        return await self._finish(outcome)

    # =========================================================================
    # Reject / withdraw a pending application
    # =========================================================================

    async def _load_application(self, application_id: str) -> Application:
        application = await self.applications.get_by_id_or_none(application_id)
        if application is None:
            raise NotFoundError("Application not found")
        return application

    async def reject_application(
        self,
        application_id: str,
        request: ApplicationReasonRequest,
        actor: User | None,
    ) -> ApplicationOutcome:
        actor = self._require_actor(actor)
        application = await self._load_application(application_id)
        task = await self._load_task(application.task_id)

        self._require_party(actor, task.customer_id, "Only the task owner can reject applications")
        if application.status != ApplicationStatus.PENDING:
            raise InvalidStateError(f"Application is {application.status}, expected pending")

        task_id, title = task.id, task.title
        professional_id = application.professional_id
        reason = (request.reason or "").strip() or None

        await self._compare_and_swap(
            "reject_application",
            self.applications.set_status(
                application.id,
                ApplicationStatus.PENDING,
                ApplicationStatus.REJECTED,
                responded_at=utc_now(),
                rejection_reason=reason,
            ),
            "Application is no longer pending",
        )
        await self._commit_primary("reject_application")

        outcome = ApplicationOutcome(task=task, application=application)
        self._log_operation("Application rejected", task_id=task_id, application_id=application_id, reason=reason)

        await self._side_effect(
            outcome, "notify_professional",
            self._notify,
            professional_id,
            type=NotificationType.APPLICATION_REJECTED,
            template_data={"taskTitle": title},
            metadata={"taskId": task_id, "applicationId": application_id, "reason": reason},
            delivery_channel=DeliveryChannel.IN_APP,
        )
        return await self._finish(outcome)

    async def withdraw_application(
        self,
        application_id: str,
        request: ApplicationReasonRequest,
        actor: User | None,
    ) -> ApplicationOutcome:
        """Professional takes back a bid that has not been answered yet."""
        actor = self._require_actor(actor)
        application = await self._load_application(application_id)

        self._require_party(actor, application.professional_id, "You can only withdraw your own applications")
        if application.status != ApplicationStatus.PENDING:
            raise InvalidStateError(f"Application is {application.status}, expected pending")
        task = await self._load_task(application.task_id)

        reason = (request.reason or "").strip() or None
        await self._compare_and_swap(
            "withdraw_application",
            self.applications.set_status(
                application.id,
                ApplicationStatus.PENDING,
                ApplicationStatus.WITHDRAWN,
                withdrawn_at=utc_now(),
                withdrawal_reason=reason,
            ),
            "Application is no longer pending",
        )
        await self._commit_primary("withdraw_application")

        outcome = ApplicationOutcome(task=task, application=application)
        self._log_operation(
            "Application withdrawn",
            task_id=task.id,
            application_id=application_id,
            professional_id=actor.id,
        )
        return await self._finish(outcome)

    # =========================================================================
    # Withdraw
    # =========================================================================

    async def withdraw(self, task_id: str, request: WithdrawRequest, actor: User | None) -> WithdrawOutcome:
        """
        Professional leaves an in-progress task, reopening it.

        Checks run in this order: reason present (400), caller signed in
        (401), task exists (404), task in progress (400), caller assigned
        (403), application exists (404), application accepted (400).
        """
        self._validate_required({"reason": request.reason}, ["reason"])
        actor = self._require_actor(actor)
        actor_id = actor.id

        task = await self._load_task(task_id)
        if task.status != TaskStatus.IN_PROGRESS:
            raise InvalidStateError(f"Cannot withdraw from a task that is {task.status}")
        self._require_party(actor, task.selected_professional_id, "Only the assigned professional can withdraw")

        application = await self.applications.get_for_task_and_professional(task_id, actor_id)
        if application is None:
            raise NotFoundError("Application not found")
        if application.status != ApplicationStatus.ACCEPTED:
            raise InvalidStateError(f"Application is {application.status}, expected accepted")

        policy = get_app_config().lifecycle.withdrawal
        now = utc_now()
        accepted_at = application.accepted_at or application.created_at
        impact = classify_timing_impact(
            hours_between(accepted_at, now),
            low_hours=policy.low_impact_hours,
            medium_hours=policy.medium_impact_hours,
        )
        if impact != TimingImpact.LOW:
            await self._enforce_withdrawal_quota(actor_id, now, policy)

        customer_id, title = task.customer_id, task.title
        await self._compare_and_swap(
            "withdraw_task",
            self.tasks.transition(
                task_id,
                TaskStatus.IN_PROGRESS,
                TaskStatus.OPEN,
                expected={"selected_professional_id": actor_id},
                selected_professional_id=None,
            ),
            "Task status changed, please reload",
        )
        await self._compare_and_swap(
            "withdraw_application",
            self.applications.set_status(
                application.id,
                ApplicationStatus.ACCEPTED,
                ApplicationStatus.WITHDRAWN,
                withdrawn_at=now,
                withdrawal_reason=request.reason.strip(),
                withdrawal_description=request.description,
                withdrawal_timing_impact=impact.value,
            ),
            "Application status changed, please reload",
        )
        await self._commit_primary("withdraw_task")

        outcome = WithdrawOutcome(task=task, timing_impact=impact)
        self._log_operation(
            "Professional withdrew from task",
            task_id=task_id,
            professional_id=actor_id,
            timing_impact=impact.value,
        )

        professional_name = await self._display_name(actor_id)
        await self._side_effect(
            outcome, "notify_customer",
            self._notify,
            customer_id,
            type=NotificationType.PROFESSIONAL_WITHDREW,
            template_data={"taskTitle": title, "professionalName": professional_name},
            metadata={
                "taskId": task_id,
                "professionalId": actor_id,
                "reason": request.reason,
                "description": request.description,
                "timingImpact": impact.value,
            },
            action_url=f"/tasks/{task_id}",
            delivery_channel=DeliveryChannel.BOTH,
        )
        return await self._finish(outcome)

    async def _enforce_withdrawal_quota(
        self,
        professional_id: str,
        now: datetime,
        policy: WithdrawalSchema,
    ) -> None:
        if not get_app_config().features.lifecycle_withdrawal_quota_enforced:
            return
        since = now - timedelta(days=policy.quota_window_days)
        used = await self.applications.count_disruptive_withdrawals(professional_id, since)
        if used >= policy.quota_limit:
            raise RateLimitError(
                "Monthly withdrawal limit reached",
                details={
                    "limit": policy.quota_limit,
                    "window_days": policy.quota_window_days,
                    "used": used,
                },
            )

    # =========================================================================
    # Remove professional
    # =========================================================================

    async def remove_professional(
        self,
        task_id: str,
        request: RemoveProfessionalRequest,
        actor: User | None,
    ) -> RemovalOutcome:
        """
        Customer takes an in-progress task away from its professional, reopening it.

        Checks run in this order: caller signed in (401), reason present
        (400), task exists (404), caller owns the task (403), task in
        progress (400), accepted application exists (400), monthly removal
        limit not used up (429).
        """
        actor = self._require_actor(actor)
        actor_id = actor.id
        self._validate_required({"reason": request.reason}, ["reason"])

        task = await self._load_task(task_id)
        self._require_party(actor, task.customer_id, "Only the task owner can remove the professional")
        if task.status != TaskStatus.IN_PROGRESS:
            raise InvalidStateError(f"Can only remove professionals from in_progress tasks, task is {task.status}")
        application = await self.applications.get_accepted_for_task(task_id)
        if application is None:
            raise InvalidStateError("No professional assigned to this task")

        limit = get_app_config().lifecycle.removal.monthly_limit
        now = utc_now()
        used = await self._enforce_removal_quota(actor_id, now, limit)

        title = task.title
        professional_id = application.professional_id
        reason = request.reason.strip()
        days_worked = int(hours_between(application.accepted_at or application.created_at, now) // 24)

        await self._compare_and_swap(
            "remove_professional",
            self.tasks.transition(
                task_id,
                TaskStatus.IN_PROGRESS,
                TaskStatus.OPEN,
                expected={"selected_professional_id": professional_id},
                selected_professional_id=None,
            ),
            "Task status changed, please reload",
        )
        await self._compare_and_swap(
            "remove_professional",
            self.applications.set_status(
                application.id,
                ApplicationStatus.ACCEPTED,
                ApplicationStatus.REMOVED_BY_CUSTOMER,
                removed_by_customer_at=now,
                removal_reason=reason,
                removal_description=request.description,
                days_worked_before_removal=days_worked,
            ),
            "Application status changed, please reload",
        )
        await self._commit_primary("remove_professional")

        outcome = RemovalOutcome(
            task=task,
            application=application,
            remaining_removals=max(limit - (used + 1), 0),
        )
        self._log_operation(
            "Customer removed professional from task",
            task_id=task_id,
            customer_id=actor_id,
            professional_id=professional_id,
            reason=reason,
            days_worked=days_worked,
        )

        await self._side_effect(
            outcome, "notify_professional",
            self._notify,
            professional_id,
            type=NotificationType.TASK_STATUS_CHANGED,
            title="Removed from task",
            message=f'The customer has removed you from "{title}". The task is open for new applications again.',
            metadata={
                "taskId": task_id,
                "customerId": actor_id,
                "removalReason": reason,
                "daysWorked": days_worked,
            },
            action_url="/browse-tasks",
            delivery_channel=DeliveryChannel.BOTH,
        )
        return await self._finish(outcome)

    async def _enforce_removal_quota(self, customer_id: str, now: datetime, limit: int) -> int:
        """Removals the customer made this calendar month; 429 once the limit is reached."""
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        used = await self.applications.count_removals_by_customer(customer_id, month_start)
        if used >= limit and get_app_config().features.lifecycle_removal_quota_enforced:
            raise RateLimitError(
                "Monthly removal limit reached",
                details={"limit": limit, "used": used},
            )
        return used

    # =========================================================================
    # Mark complete
    # =========================================================================

    async def mark_complete(self, task_id: str, actor: User | None) -> TransitionOutcome:
        actor = self._require_actor(actor)
        actor_id = actor.id

        task = await self._load_task(task_id)
        self._require_party(
            actor, task.selected_professional_id, "Only the assigned professional can mark the task complete",
        )
        if task.status != TaskStatus.IN_PROGRESS:
            raise InvalidStateError(f"Task is {task.status}, expected in_progress")

        customer_id, title = task.customer_id, task.title
        await self._compare_and_swap(
            "mark_complete",
            self.tasks.transition(
                task_id,
                TaskStatus.IN_PROGRESS,
                TaskStatus.PENDING_CUSTOMER_CONFIRMATION,
                expected={"selected_professional_id": actor_id},
                completed_by_professional_at=utc_now(),
            ),
            "Task status changed, please reload",
        )
        await self._commit_primary("mark_complete")

        outcome = TransitionOutcome(task=task)
        self._log_operation("Task marked complete by professional", task_id=task_id, professional_id=actor_id)

        await self._side_effect(
            outcome, "notify_customer",
            self._notify,
            customer_id,
            type=NotificationType.TASK_COMPLETED,
            template_data={"taskTitle": title},
            metadata={"taskId": task_id, "professionalId": actor_id, "awaitingConfirmation": True},
            action_url=f"/tasks/{task_id}",
            delivery_channel=DeliveryChannel.BOTH,
        )
        return await self._finish(outcome)

    # =========================================================================
    # Confirm / reject completion
    # =========================================================================

    async def confirm_completion(
        self,
        task_id: str,
        request: ConfirmCompletionRequest,
        actor: User | None,
    ) -> TransitionOutcome:
        """
        Customer answers the professional's completion claim.

        The request is validated (action, rejection reason) before the
        caller is authenticated, so malformed requests are 400 regardless.
        """
        if request.action not in CONFIRM_ACTIONS:
            raise ValidationError("Invalid action, expected 'confirm' or 'reject'")

        reason = None
        if request.action == "reject":
            raw_reason = request.rejection_data.reason if request.rejection_data else None
            if not raw_reason:
                raise ValidationError("Rejection reason is required when rejecting")
            try:
                reason = RejectionReason(raw_reason)
            except ValueError:
                raise ValidationError(
                    "Invalid rejection reason",
                    details={"allowed": [item.value for item in RejectionReason]},
                )

        actor = self._require_actor(actor)
        task = await self._load_task(task_id)
        self._require_party(actor, task.customer_id, "Only the task owner can confirm completion")
        if task.status != TaskStatus.PENDING_CUSTOMER_CONFIRMATION:
            raise InvalidStateError(f"Task is {task.status}, expected pending_customer_confirmation")
        if task.selected_professional_id is None:
            raise InvalidStateError("Task has no assigned professional")

        if reason is None:
            return await self._confirm(task, request, actor)
        return await self._reject(task, reason, request.rejection_data.description, actor)

    async def _confirm(self, task: Task, request: ConfirmCompletionRequest, actor: User) -> TransitionOutcome:
        customer_id = actor.id
        task_id, title = task.id, task.title
        professional_id = task.selected_professional_id
        confirmation = request.confirmation_data
        wants_review = bool(confirmation and (confirmation.rating or confirmation.review_text))
        now = utc_now()

        await self._compare_and_swap(
            "confirm_completion",
            self.tasks.transition(
                task_id,
                TaskStatus.PENDING_CUSTOMER_CONFIRMATION,
                TaskStatus.COMPLETED,
                expected={"selected_professional_id": professional_id},
                confirmed_by_customer_at=now,
                completed_at=now,
                reviewed_by_customer=wants_review,
            ),
            "Task status changed, please reload",
        )
        await self._commit_primary("confirm_completion")

        outcome = TransitionOutcome(task=task)
        self._log_operation("Customer confirmed completion", task_id=task_id, customer_id=customer_id)

        await self._side_effect(
            outcome, "delete_rejected_applications",
            self.applications.delete_for_task, task_id, ApplicationStatus.REJECTED,
        )
        await self._side_effect(
            outcome, "complete_accepted_application",
            self._complete_accepted_application, task_id,
        )
        if wants_review:
            await self._side_effect(
                outcome, "create_review",
                self._create_review, task_id, customer_id, professional_id,
                confirmation.rating or DEFAULT_REVIEW_RATING, confirmation.review_text,
            )
        await self._side_effect(
            outcome, "update_professional_stats",
            self._recompute_professional_stats, professional_id,
        )

        customer_name = await self._display_name(customer_id)
        await self._side_effect(
            outcome, "notify_professional",
            self._notify,
            professional_id,
            type=NotificationType.TASK_COMPLETED,
            template_data={"taskTitle": title, "customerName": customer_name},
            metadata={
                "taskId": task_id,
                "customerId": customer_id,
                "completedAt": now.isoformat(),
                "rating": confirmation.rating if confirmation else None,
            },
            action_url=f"/tasks/{task_id}",
            delivery_channel=DeliveryChannel.BOTH,
        )
        return await self._finish(outcome)

    async def _reject(
        self,
        task: Task,
        reason: RejectionReason,
        description: str | None,
        actor: User,
    ) -> TransitionOutcome:
        customer_id = actor.id
        task_id, title = task.id, task.title
        professional_id = task.selected_professional_id

        await self._compare_and_swap(
            "reject_completion",
            self.tasks.transition(
                task_id,
                TaskStatus.PENDING_CUSTOMER_CONFIRMATION,
                TaskStatus.IN_PROGRESS,
                expected={"selected_professional_id": professional_id},
                completed_by_professional_at=None,
            ),
            "Task status changed, please reload",
        )
        await self._commit_primary("reject_completion")

        outcome = TransitionOutcome(task=task)
        self._log_operation(
            "Customer rejected completion",
            task_id=task_id,
            customer_id=customer_id,
            reason=reason.value,
        )

        message = f'The customer has requested changes for "{title}". Reason: {REJECTION_REASON_TEXT[reason]}'
        if description:
            message += f"\n\nDetails: {description}"
        await self._side_effect(
            outcome, "notify_professional",
            self._notify,
            professional_id,
            type=NotificationType.TASK_STATUS_CHANGED,
            title="Task Completion Rejected",
            message=message,
            metadata={
                "taskId": task_id,
                "customerId": customer_id,
                "rejectionReason": reason.value,
                "rejectionDescription": description,
            },
            action_url=f"/tasks/{task_id}",
            delivery_channel=DeliveryChannel.BOTH,
        )
        return await self._finish(outcome)

    async def _complete_accepted_application(self, task_id: str) -> str:
        application = await self.applications.get_accepted_for_task(task_id)
        if application is None:
            return "no accepted application"
        await self._compare_and_swap(
            "complete_application",
            self.applications.set_status(application.id, ApplicationStatus.ACCEPTED, ApplicationStatus.COMPLETED),
            "Accepted application changed concurrently",
        )
        return application.id

    async def _create_review(
        self,
        task_id: str,
        reviewer_id: str,
        reviewee_id: str,
        rating: int,
        comment: str | None,
    ) -> str:
        existing = await self.reviews.get_for_task_and_reviewer(task_id, reviewer_id)
        if existing is not None:
            return "already reviewed"
        review = await self.reviews.create(
            task_id=task_id,
            reviewer_id=reviewer_id,
            reviewee_id=reviewee_id,
            rating=rating,
            comment=comment,
            review_type=ReviewType.CUSTOMER_TO_PROFESSIONAL.value,
        )
        return review.id

    async def _recompute_professional_stats(self, professional_id: str) -> str:
        completed = await self.tasks.count_completed_for_professional(professional_id)
        average, total = await self.reviews.rating_summary(professional_id)
        await self.users.set_rating_stats(professional_id, completed, average, total)
        return f"tasks_completed={completed} average_rating={average} total_reviews={total}"

    # =========================================================================
    # Cancel
    # =========================================================================

    async def cancel(self, task_id: str, actor: User | None) -> TransitionOutcome:
        actor = self._require_actor(actor)
        actor_id = actor.id

        task = await self._load_task(task_id)
        self._require_party(actor, task.customer_id, "Only the task owner can cancel the task")
        if task.status != TaskStatus.OPEN:
            raise InvalidStateError(f"Only open tasks can be cancelled, task is {task.status}")

        title = task.title
        applicant_ids = sorted({item.professional_id for item in await self.applications.list_for_task(task_id)})

        await self._compare_and_swap(
            "cancel_task",
            self.tasks.transition(task_id, TaskStatus.OPEN, TaskStatus.CANCELLED, cancelled_at=utc_now()),
            "Task status changed, please reload",
        )
        await self._commit_primary("cancel_task")

        outcome = TransitionOutcome(task=task)
        self._log_operation("Task cancelled", task_id=task_id, customer_id=actor_id)

        await self._side_effect(
            outcome, "delete_applications",
            self.applications.delete_for_task, task_id,
        )
        for applicant_id in applicant_ids:
            await self._side_effect(
                outcome, f"notify_applicant:{applicant_id}",
                self._notify,
                applicant_id,
                type=NotificationType.TASK_CANCELLED,
                template_data={"taskTitle": title},
                metadata={"taskId": task_id},
                delivery_channel=DeliveryChannel.IN_APP,
            )
        return await self._finish(outcome)
