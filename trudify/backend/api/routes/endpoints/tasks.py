"""
Task API Endpoints.

Task creation, listing and the lifecycle transitions driven by the
customer and the assigned professional.
"""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query

from trudify.backend.core.dependencies import CurrentUser, DbSession, OptionalUser, RequestId
from trudify.backend.core.pagination import (
    PaginationParams,
    create_paginated_response,
    get_pagination_params,
)
from trudify.backend.schemas.application import ApplicationResponse
from trudify.backend.schemas.base import ApiResponse
from trudify.backend.schemas.lifecycle import (
    ConfirmCompletionRequest,
    RemoveProfessionalRequest,
    RemoveProfessionalResponse,
    SideEffectResponse,
    TransitionResponse,
    WithdrawRequest,
    WithdrawResponse,
)
from trudify.backend.schemas.task import TaskCreate, TaskResponse
from trudify.backend.services.lifecycle import (
    LifecycleService,
    RemovalOutcome,
    TransitionOutcome,
    WithdrawOutcome,
)
from trudify.backend.services.tasks import TaskService

router = APIRouter()


def transition_response(outcome: TransitionOutcome) -> TransitionResponse:
    return TransitionResponse(
        task=TaskResponse.model_validate(outcome.task),
        side_effects=[SideEffectResponse.model_validate(effect) for effect in outcome.side_effects],
    )


def withdraw_response(outcome: WithdrawOutcome) -> WithdrawResponse:
    return WithdrawResponse(
        task=TaskResponse.model_validate(outcome.task),
        side_effects=[SideEffectResponse.model_validate(effect) for effect in outcome.side_effects],
        timing_impact=outcome.timing_impact.value,
        counts_toward_limit=outcome.counts_toward_limit,
        task_reopened=True,
    )


def removal_response(outcome: RemovalOutcome) -> RemoveProfessionalResponse:
    return RemoveProfessionalResponse(
        task=TaskResponse.model_validate(outcome.task),
        application=ApplicationResponse.model_validate(outcome.application),
        side_effects=[SideEffectResponse.model_validate(effect) for effect in outcome.side_effects],
        remaining_removals=outcome.remaining_removals,
    )


@router.post(
    "",
    response_model=ApiResponse[TaskResponse],
    status_code=201,
    summary="Create a task",
    description="Post a new open task owned by the caller. Text fields are screened for profanity.",
)
async def create_task(
    data: TaskCreate,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[TaskResponse]:
    service = TaskService(db)
    task = await service.create_task(data, user)
    return ApiResponse(data=TaskResponse.model_validate(task))


@router.get(
    "",
    summary="List tasks",
    description=(
        "featured=true returns the landing-page selection. mode=posted lists the "
        "caller's own tasks, mode=applications is reserved, default browse lists open tasks."
    ),
)
async def list_tasks(
    db: DbSession,
    request_id: RequestId,
    user: OptionalUser,
    pagination: PaginationParams = Depends(get_pagination_params),
    mode: Literal["browse", "posted", "applications"] = Query(default="browse"),
    featured: bool = Query(default=False),
    category: str | None = Query(default=None, max_length=64),
    city: str | None = Query(default=None, max_length=128),
) -> dict[str, Any]:
    service = TaskService(db)

    if featured:
        tasks = await service.list_featured()
        return create_paginated_response(
            items=tasks,
            item_schema=TaskResponse,
            total=len(tasks),
            limit=len(tasks),
            request_id=request_id,
        )

    if mode == "posted":
        tasks, total = await service.list_posted(user, pagination.limit, pagination.offset)
    elif mode == "applications":
        tasks, total = await service.list_applications(user)
    else:
        tasks, total = await service.list_browse(category, city, pagination.limit, pagination.offset)

    return create_paginated_response(
        items=tasks,
        item_schema=TaskResponse,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
        request_id=request_id,
    )


@router.get(
    "/{task_id}",
    response_model=ApiResponse[TaskResponse],
    summary="Get a task",
)
async def get_task(task_id: str, db: DbSession) -> ApiResponse[TaskResponse]:
    task = await TaskService(db).get_task(task_id)
    return ApiResponse(data=TaskResponse.model_validate(task))


@router.post(
    "/{task_id}/withdraw",
    response_model=ApiResponse[WithdrawResponse],
    summary="Withdraw from a task",
    description="The assigned professional leaves an in-progress task, which reopens it.",
)
async def withdraw_from_task(
    task_id: str,
    db: DbSession,
    user: OptionalUser,
    data: WithdrawRequest | None = None,
) -> ApiResponse[WithdrawResponse]:
    outcome = await LifecycleService(db).withdraw(task_id, data or WithdrawRequest(), user)
    return ApiResponse(data=withdraw_response(outcome))


@router.post(
    "/{task_id}/mark-complete",
    response_model=ApiResponse[TransitionResponse],
    summary="Mark a task complete",
    description="The assigned professional claims completion; the customer must confirm.",
)
async def mark_task_complete(
    task_id: str,
    db: DbSession,
    user: OptionalUser,
) -> ApiResponse[TransitionResponse]:
    outcome = await LifecycleService(db).mark_complete(task_id, user)
    return ApiResponse(data=transition_response(outcome))


@router.post(
    "/{task_id}/confirm-completion",
    response_model=ApiResponse[TransitionResponse],
    summary="Confirm or reject completion",
    description="The customer confirms the completion claim (optionally with a review) or rejects it.",
)
async def confirm_task_completion(
    task_id: str,
    db: DbSession,
    user: OptionalUser,
    data: ConfirmCompletionRequest | None = None,
) -> ApiResponse[TransitionResponse]:
    outcome = await LifecycleService(db).confirm_completion(
        task_id, data or ConfirmCompletionRequest(), user,
    )
    return ApiResponse(data=transition_response(outcome))


@router.post(
    "/{task_id}/cancel",
    response_model=ApiResponse[TransitionResponse],
    summary="Cancel an open task",
)
async def cancel_task(
    task_id: str,
    db: DbSession,
    user: OptionalUser,
) -> ApiResponse[TransitionResponse]:
    outcome = await LifecycleService(db).cancel(task_id, user)
    return ApiResponse(data=transition_response(outcome))


@router.post(
    "/{task_id}/remove-professional",
    response_model=ApiResponse[RemoveProfessionalResponse],
    summary="Remove the assigned professional",
    description="The customer takes an in-progress task away from its professional and reopens it.",
)
async def remove_professional(
    task_id: str,
    db: DbSession,
    user: OptionalUser,
    data: RemoveProfessionalRequest | None = None,
) -> ApiResponse[RemoveProfessionalResponse]:
    outcome = await LifecycleService(db).remove_professional(
        task_id, data or RemoveProfessionalRequest(), user,
    )
    return ApiResponse(data=removal_response(outcome))
