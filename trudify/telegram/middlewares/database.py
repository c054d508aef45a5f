"""Per-update database session for bot handlers (the ``session`` handler argument)."""

from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from trudify.backend.core.database import session_scope


class DatabaseSessionMiddleware(BaseMiddleware):
    def __init__(self, session_factory: Callable[[], Any] | None = None) -> None:
        self._session_factory = session_factory

    def _factory(self) -> Callable[[], Any]:
        # Resolved on the first update so building the dispatcher needs no database
        if self._session_factory is None:
            from trudify.backend.core import database

            self._session_factory = database.get_session_factory()
        return self._session_factory

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        async with session_scope(self._factory()) as session:
            data["session"] = session
            return await handler(event, data)
