"""
Bot and dispatcher.

Both are built on first use and shared by the webhook route and the
notification sender. Importing this module does not import aiogram, so the
web app starts without it when the Telegram channel is disabled.
"""

from typing import TYPE_CHECKING

from trudify.backend.core.logging import get_logger

if TYPE_CHECKING:
    from aiogram import Bot, Dispatcher

logger = get_logger(__name__)

_bot: "Bot | None" = None
_dispatcher: "Dispatcher | None" = None


def create_bot() -> "Bot":
    """
    Bot with HTML parse mode (notification texts use <b> and links) and
    the Bot API timeout from telegram.yaml.

    Raises:
        RuntimeError: TELEGRAM_BOT_TOKEN is empty
    """
    from aiogram import Bot
    from aiogram.client.default import DefaultBotProperties
    from aiogram.client.session.aiohttp import AiohttpSession
    from aiogram.enums import ParseMode

    from trudify.backend.core.config import get_app_config, get_settings

    token = get_settings().telegram_bot_token
    if not token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN not configured. Set it in the environment or in config/.env")

    timeout = get_app_config().telegram.request_timeout_seconds
    bot = Bot(
        token=token,
        session=AiohttpSession(timeout=timeout),
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    logger.info("Telegram bot created", extra={"request_timeout_seconds": timeout})
    return bot


def create_dispatcher() -> "Dispatcher":
    from aiogram import Dispatcher

    from trudify.telegram.handlers import get_all_routers
    from trudify.telegram.middlewares import setup_middlewares

    dp = Dispatcher()
    setup_middlewares(dp)
    routers = get_all_routers()
    dp.include_routers(*routers)

    logger.info("Telegram dispatcher created", extra={"routers": [router.name for router in routers]})
    return dp


def get_bot() -> "Bot":
    global _bot
    if _bot is None:
        _bot = create_bot()
    return _bot


def get_dispatcher() -> "Dispatcher":
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = create_dispatcher()
    return _dispatcher


async def setup_webhook(bot: "Bot", webhook_url: str, secret_token: str | None) -> None:
    """Point Telegram at webhook_url, asking only for update types we handle and dropping the backlog."""
    await bot.set_webhook(
        url=webhook_url,
        secret_token=secret_token or None,
        drop_pending_updates=True,
        allowed_updates=get_dispatcher().resolve_used_update_types(),
    )
    logger.info("Webhook configured", extra={"webhook_url": webhook_url})


async def close_bot() -> None:
    """Close the shared bot's HTTP session; the webhook stays registered for the next instance."""
    global _bot
    if _bot is not None:
        await _bot.session.close()
        _bot = None
        logger.info("Telegram bot session closed")
