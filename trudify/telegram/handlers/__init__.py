"""
Bot command handlers.

The bot answers /start only; everything else a user sends is ignored.
"""

from aiogram import Router

from trudify.telegram.handlers import start


def get_all_routers() -> list[Router]:
    return [start.router]
