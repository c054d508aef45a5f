"""
Update logging.

Each update is logged on arrival (info) and once more when done: debug on
success, error with the exception type on failure. Only the command name of
a message is recorded, never its text; ``/start <token>`` would otherwise
put a connection token in the log.
"""

import time
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Update

from trudify.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)


def update_context(event: TelegramObject) -> dict[str, Any]:
    if not isinstance(event, Update):
        return {}

    context: dict[str, Any] = {"update_id": event.update_id, "update_type": event.event_type}
    message = event.message
    if message is None:
        return context

    context["chat_id"] = message.chat.id
    sender = message.from_user
    if sender is not None:
        context.update(user_id=sender.id, username=sender.username)
    if message.text and message.text.startswith("/"):
        context["command"] = message.text.split(maxsplit=1)[0]
    return context


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        context = update_context(event)
        log_with_source(logger, "telegram", "info", "Telegram update received", **context)
        started = time.perf_counter()

        try:
            result = await handler(event, data)
        except Exception as e:
            log_with_source(
                logger,
                "telegram",
                "error",
                "Telegram update processing error",
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=_elapsed_ms(started),
                **context,
            )
            raise

        log_with_source(
            logger, "telegram", "debug", "Telegram update processed", elapsed_ms=_elapsed_ms(started), **context
        )
        return result
