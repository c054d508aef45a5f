"""
Webhook Endpoint for Telegram Bot.

POST accepts updates from Telegram. The secret header is checked, then the
update is handed to the dispatcher in a background task and the request is
answered with 200 straight away. Telegram retries anything that is not a
200, so parse and processing errors are logged rather than returned.

GET answers with a small identity payload for uptime checks.
"""

import asyncio
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, Response

from trudify.backend.core.config import get_app_config, get_settings
from trudify.backend.core.logging import get_logger, log_with_source
from trudify.backend.core.security import secrets_match
from trudify.backend.schemas.telegram import WebhookInfo

if TYPE_CHECKING:
    from aiogram import Bot, Dispatcher

logger = get_logger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

# Strong references so in-flight update tasks are not garbage collected
_background_tasks: set[asyncio.Task] = set()


async def _process_update(bot: "Bot", dp: "Dispatcher", update: Any) -> None:
    try:
        await dp.feed_update(bot, update)
    except Exception as e:
        log_with_source(
            logger,
            "telegram",
            "error",
            "Error processing Telegram update",
            update_id=update.update_id,
            error=str(e),
            error_type=type(e).__name__,
        )


def schedule_update(bot: "Bot", dp: "Dispatcher", update: Any) -> asyncio.Task:
    """Process an update detached from the HTTP request."""
    task = asyncio.create_task(_process_update(bot, dp, update))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def wait_for_pending_updates(timeout: float = 10.0) -> None:
    """Give in-flight updates a chance to finish on shutdown."""
    if not _background_tasks:
        return
    pending = list(_background_tasks)
    logger.info("Waiting for pending Telegram updates", extra={"count": len(pending)})
    _, still_running = await asyncio.wait(pending, timeout=timeout)
    if still_running:
        logger.warning("Telegram updates still running at shutdown", extra={"count": len(still_running)})


def get_webhook_router(bot: "Bot", dp: "Dispatcher") -> APIRouter:
    """
    Create the FastAPI router serving the webhook path from telegram.yaml.

    Usage:
        app.include_router(get_webhook_router(get_bot(), get_dispatcher()))
    """
    from aiogram.types import Update

    router = APIRouter()
    webhook_path = get_app_config().telegram.webhook_path

    @router.post(webhook_path)
    async def telegram_webhook(request: Request) -> Response:
        webhook_secret = get_settings().telegram_webhook_secret
        if webhook_secret and not secrets_match(request.headers.get(SECRET_HEADER), webhook_secret):
            logger.warning(
                "Invalid webhook secret token",
                extra={"client_ip": request.client.host if request.client else None},
            )
            return Response(status_code=403)

        try:
            update_data = await request.json()
            update = Update.model_validate(update_data, context={"bot": bot})
        except Exception as e:
            logger.error("Unparseable Telegram update", extra={"error": str(e)})
            return Response(status_code=200)

        logger.debug(
            "Received Telegram update",
            extra={"update_id": update.update_id, "update_type": update.event_type},
        )
        schedule_update(bot, dp, update)
        return Response(status_code=200)

    @router.get(webhook_path, response_model=WebhookInfo)
    async def telegram_webhook_info() -> WebhookInfo:
        return WebhookInfo(bot_username=get_app_config().telegram.bot_username)

    return router


def get_webhook_url(base_url: str) -> str:
    """Full webhook URL for a public base URL (https://api.trudify.com)."""
    return f"{base_url.rstrip('/')}{get_app_config().telegram.webhook_path}"
