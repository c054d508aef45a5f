"""
Notification Schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field

from trudify.backend.schemas.base import CamelModel


class NotificationResponse(CamelModel):
    """Inbox entry as seen by the frontend."""

    id: str
    type: str
    title: str
    message: str
    metadata: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("meta", "metadata"))
    action_url: str | None = None
    delivery_channel: str
    state: str
    telegram_sent_at: datetime | None = None
    telegram_delivery_status: str | None = None
    created_at: datetime


class NotificationList(CamelModel):
    notifications: list[NotificationResponse]
    unread_count: int
