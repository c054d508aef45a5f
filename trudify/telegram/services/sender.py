"""
Telegram Sender.

Outbound delivery of chat messages through the Bot API. Failures are
logged with the elapsed time and reported in the result, never raised,
so callers can record a delivery status and carry on.

Usage:
    sender = get_telegram_sender()
    result = await sender.send(chat_id=123456789, text="<b>Hi</b>")
    if not result.success:
        ...
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from trudify.backend.core.logging import get_logger, log_with_source
from trudify.backend.core.utils import utc_now

if TYPE_CHECKING:
    from aiogram import Bot

logger = get_logger(__name__)


@dataclass
class SendResult:
    """Result of a message send attempt."""

    success: bool
    chat_id: int
    message_id: int | None = None
    error: str | None = None
    elapsed_ms: float = 0.0
    timestamp: datetime = field(default_factory=utc_now)


class TelegramSender:
    """
    Send HTML messages to Telegram chats.

    The bot's HTTP session carries the request timeout, so a slow Bot API
    call surfaces here as an exception after that many seconds.
    """

    def __init__(self, bot: "Bot") -> None:
        self._bot = bot

    async def send(
        self,
        chat_id: int,
        text: str,
        disable_notification: bool = False,
    ) -> SendResult:
        start = time.perf_counter()
        try:
            message = await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                disable_notification=disable_notification,
            )
        except Exception as e:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            log_with_source(
                logger,
                "telegram",
                "error",
                "Failed to send Telegram message",
                chat_id=chat_id,
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=elapsed_ms,
            )
            return SendResult(success=False, chat_id=chat_id, error=str(e), elapsed_ms=elapsed_ms)

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        log_with_source(
            logger,
            "telegram",
            "info",
            "Telegram message sent",
            chat_id=chat_id,
            message_id=message.message_id,
            elapsed_ms=elapsed_ms,
        )
        return SendResult(
            success=True,
            chat_id=chat_id,
            message_id=message.message_id,
            elapsed_ms=elapsed_ms,
        )


_sender: TelegramSender | None = None


def get_telegram_sender() -> TelegramSender:
    """Get or create the sender bound to the shared bot."""
    global _sender
    if _sender is None:
        from trudify.telegram.bot import get_bot

        _sender = TelegramSender(get_bot())
    return _sender
