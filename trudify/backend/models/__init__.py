# Importing the models registers their tables on Base.metadata
from trudify.backend.models.application import Application
from trudify.backend.models.base import Base
from trudify.backend.models.notification import Notification
from trudify.backend.models.review import Review
from trudify.backend.models.task import Task
from trudify.backend.models.token import NotificationSessionToken, TelegramConnectionToken
from trudify.backend.models.user import User

__all__ = [
    "Application",
    "Base",
    "Notification",
    "NotificationSessionToken",
    "Review",
    "Task",
    "TelegramConnectionToken",
    "User",
]
