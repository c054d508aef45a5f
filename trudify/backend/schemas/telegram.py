"""
Telegram Schemas.
"""

from datetime import datetime

from trudify.backend.schemas.base import CamelModel


class ConnectionTokenResponse(CamelModel):
    token: str
    deep_link: str
    expires_at: datetime


class WebhookInfo(CamelModel):
    status: str = "ok"
    service: str = "trudify-telegram-webhook"
    bot_username: str
