"""
Lifecycle Schemas.

Request bodies for task and application transitions (withdraw, remove
the professional, confirm or reject completion, reject or withdraw an
application) and the outcome records returned for them.

Fields that the lifecycle service must check itself (withdrawal and
removal reasons, confirmation action, rejection reason) are declared
loosely here so that a missing value is reported as a 400 from the
service rather than a 422 from request parsing.
"""

from enum import Enum

from pydantic import Field

from trudify.backend.schemas.application import ApplicationResponse
from trudify.backend.schemas.base import CamelModel
from trudify.backend.schemas.task import TaskResponse


class RejectionReason(str, Enum):
    NOT_COMPLETED = "not_completed"
    POOR_QUALITY = "poor_quality"
    DIFFERENT_SCOPE = "different_scope"
    OTHER = "other"


class WithdrawRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=64)
    description: str | None = Field(default=None, max_length=2000)


class ApplicationReasonRequest(CamelModel):
    """Optional reason given when rejecting or withdrawing a pending application."""

    reason: str | None = Field(default=None, max_length=64)


class RemoveProfessionalRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=64)
    description: str | None = Field(default=None, max_length=2000)


class ConfirmationData(CamelModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    review_text: str | None = Field(default=None, max_length=2000)


class RejectionData(CamelModel):
    reason: str | None = None
    description: str | None = Field(default=None, max_length=2000)


class ConfirmCompletionRequest(CamelModel):
    action: str | None = None
    confirmation_data: ConfirmationData | None = None
    rejection_data: RejectionData | None = None


class SideEffectResponse(CamelModel):
    name: str
    success: bool
    detail: str | None = None


class TransitionResponse(CamelModel):
    """Result of a lifecycle transition: the new task state plus side-effect report."""

    task: TaskResponse
    side_effects: list[SideEffectResponse] = []


class WithdrawResponse(TransitionResponse):
    timing_impact: str
    counts_toward_limit: bool
    task_reopened: bool = True


class AcceptApplicationResponse(TransitionResponse):
    application: ApplicationResponse
    rejected_count: int = 0


class ApplicationTransitionResponse(CamelModel):
    """Result of submitting, rejecting or withdrawing an application."""

    application: ApplicationResponse
    side_effects: list[SideEffectResponse] = []


class RemoveProfessionalResponse(TransitionResponse):
    application: ApplicationResponse
    remaining_removals: int
