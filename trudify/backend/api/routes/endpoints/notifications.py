"""
Notification API Endpoints.

The signed-in user's inbox.
"""

from fastapi import APIRouter, Depends

from trudify.backend.core.dependencies import DbSession, OptionalUser
from trudify.backend.core.pagination import PaginationParams, get_pagination_params
from trudify.backend.schemas.base import ApiResponse
from trudify.backend.schemas.notification import NotificationList, NotificationResponse
from trudify.backend.services.inbox import InboxService

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[NotificationList],
    summary="List notifications",
    description="Newest first, with the number of unread notifications.",
)
async def list_notifications(
    db: DbSession,
    user: OptionalUser,
    pagination: PaginationParams = Depends(get_pagination_params),
) -> ApiResponse[NotificationList]:
    items, unread = await InboxService(db).list_notifications(user, pagination.limit, pagination.offset)
    return ApiResponse(
        data=NotificationList(
            notifications=[NotificationResponse.model_validate(item) for item in items],
            unread_count=unread,
        )
    )


@router.post(
    "/{notification_id}/read",
    response_model=ApiResponse[NotificationResponse],
    summary="Mark a notification read",
)
async def mark_notification_read(
    notification_id: str,
    db: DbSession,
    user: OptionalUser,
) -> ApiResponse[NotificationResponse]:
    notification = await InboxService(db).mark_read(notification_id, user)
    return ApiResponse(data=NotificationResponse.model_validate(notification))
