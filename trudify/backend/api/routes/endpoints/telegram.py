"""
Telegram Account API Endpoints.

Connection token issuance for the bot deep link and manual linking by
chat id. The bot webhook itself lives in trudify.telegram.webhook.
"""

from fastapi import APIRouter
from pydantic import Field

from trudify.backend.core.dependencies import CurrentUser, DbSession, Locale
from trudify.backend.schemas.base import ApiResponse, CamelModel
from trudify.backend.schemas.telegram import ConnectionTokenResponse
from trudify.backend.services.auth_tokens import AuthTokenService, telegram_deep_link
from trudify.backend.services.telegram_link import TelegramLinkService

router = APIRouter()


class ConnectionTokenRequest(CamelModel):
    locale: str | None = Field(default=None, max_length=8)


class ManualConnectRequest(CamelModel):
    telegram_id: str = Field(..., min_length=1, max_length=20)


class ManualConnectResponse(CamelModel):
    telegram_id: int
    preferred_notification_channel: str


@router.post(
    "/connection-token",
    response_model=ApiResponse[ConnectionTokenResponse],
    summary="Issue a Telegram connection token",
    description="Single-use token embedded in the bot's /start deep link, valid for a few minutes.",
)
async def create_connection_token(
    db: DbSession,
    user: CurrentUser,
    locale: Locale,
    data: ConnectionTokenRequest | None = None,
) -> ApiResponse[ConnectionTokenResponse]:
    token = await AuthTokenService(db).create_connection_token(
        user.id, (data.locale if data and data.locale else locale),
    )
    return ApiResponse(
        data=ConnectionTokenResponse(
            token=token.token,
            deep_link=telegram_deep_link(token.locale, token.token),
            expires_at=token.expires_at,
        )
    )


@router.post(
    "/connect",
    response_model=ApiResponse[ManualConnectResponse],
    summary="Link a Telegram chat by id",
)
async def connect_telegram(
    data: ManualConnectRequest,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[ManualConnectResponse]:
    linked = await TelegramLinkService(db).connect_manually(user, data.telegram_id)
    return ApiResponse(
        data=ManualConnectResponse(
            telegram_id=linked.telegram_id,
            preferred_notification_channel=linked.preferred_notification_channel,
        )
    )
