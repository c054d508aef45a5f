"""
Application API Endpoints.

Professionals submit and withdraw bids; the task owner accepts or
rejects them.
"""

from fastapi import APIRouter

from trudify.backend.core.dependencies import DbSession, OptionalUser
from trudify.backend.schemas.application import ApplicationCreate, ApplicationResponse
from trudify.backend.schemas.base import ApiResponse
from trudify.backend.schemas.lifecycle import (
    AcceptApplicationResponse,
    ApplicationReasonRequest,
    ApplicationTransitionResponse,
    SideEffectResponse,
)
from trudify.backend.schemas.task import TaskResponse
from trudify.backend.services.lifecycle import ApplicationOutcome, LifecycleService

router = APIRouter()


def application_response(outcome: ApplicationOutcome) -> ApplicationTransitionResponse:
    return ApplicationTransitionResponse(
        application=ApplicationResponse.model_validate(outcome.application),
        side_effects=[SideEffectResponse.model_validate(effect) for effect in outcome.side_effects],
    )


@router.post(
    "",
    response_model=ApiResponse[ApplicationTransitionResponse],
    status_code=201,
    summary="Apply to a task",
    description="A professional bids on an open task; the customer is notified.",
)
async def submit_application(
    db: DbSession,
    user: OptionalUser,
    data: ApplicationCreate | None = None,
) -> ApiResponse[ApplicationTransitionResponse]:
    outcome = await LifecycleService(db).submit_application(data or ApplicationCreate(), user)
    return ApiResponse(data=application_response(outcome))


@router.post(
    "/{application_id}/accept",
    response_model=ApiResponse[AcceptApplicationResponse],
    summary="Accept an application",
    description="The task owner picks a professional; other pending applications are rejected.",
)
async def accept_application(
    application_id: str,
    db: DbSession,
    user: OptionalUser,
) -> ApiResponse[AcceptApplicationResponse]:
    outcome = await LifecycleService(db).accept_application(application_id, user)
    return ApiResponse(
        data=AcceptApplicationResponse(
            task=TaskResponse.model_validate(outcome.task),
            application=ApplicationResponse.model_validate(outcome.application),
            rejected_count=outcome.rejected_count,
            side_effects=[SideEffectResponse.model_validate(effect) for effect in outcome.side_effects],
        )
    )


@router.patch(
    "/{application_id}/reject",
    response_model=ApiResponse[ApplicationTransitionResponse],
    summary="Reject an application",
)
async def reject_application(
    application_id: str,
    db: DbSession,
    user: OptionalUser,
    data: ApplicationReasonRequest | None = None,
) -> ApiResponse[ApplicationTransitionResponse]:
    outcome = await LifecycleService(db).reject_application(
        application_id, data or ApplicationReasonRequest(), user,
    )
    return ApiResponse(data=application_response(outcome))


@router.patch(
    "/{application_id}/withdraw",
    response_model=ApiResponse[ApplicationTransitionResponse],
    summary="Withdraw a pending application",
    description="The applicant takes back a bid the customer has not answered yet.",
)
async def withdraw_application(
    application_id: str,
    db: DbSession,
    user: OptionalUser,
    data: ApplicationReasonRequest | None = None,
) -> ApiResponse[ApplicationTransitionResponse]:
    outcome = await LifecycleService(db).withdraw_application(
        application_id, data or ApplicationReasonRequest(), user,
    )
    return ApiResponse(data=application_response(outcome))
