"""
Update middlewares.

Order matters: LoggingMiddleware wraps DatabaseSessionMiddleware, so the
logged elapsed time covers the commit and a failed commit is logged as an
update error.
"""

from typing import TYPE_CHECKING

from trudify.telegram.middlewares.database import DatabaseSessionMiddleware
from trudify.telegram.middlewares.logging import LoggingMiddleware

if TYPE_CHECKING:
    from aiogram import Dispatcher

OUTER_MIDDLEWARES = (LoggingMiddleware, DatabaseSessionMiddleware)


def setup_middlewares(dp: "Dispatcher") -> None:
    for middleware_cls in OUTER_MIDDLEWARES:
        dp.update.outer_middleware(middleware_cls())
