"""
/start Handler.

Deep-link account connection and the manual fallback. All decisions are
made by TelegramLinkService; this handler only adapts the message and
sends the replies. The session is committed before the first reply.
"""

from aiogram import Router
from aiogram.filters import CommandObject, CommandStart
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.core.logging import get_logger, log_with_source
from trudify.backend.services.telegram_link import TelegramLinkService, TelegramProfile

logger = get_logger(__name__)

router = Router(name="start")


def profile_from_message(message: Message) -> TelegramProfile:
    sender = message.from_user
    return TelegramProfile(
        chat_id=message.chat.id,
        username=sender.username if sender else None,
        first_name=sender.first_name if sender else None,
        last_name=sender.last_name if sender else None,
    )


@router.message(CommandStart())
async def cmd_start(message: Message, command: CommandObject, session: AsyncSession) -> None:
    """Handle /start and /start {locale}_{token}."""
    profile = profile_from_message(message)
    result = await TelegramLinkService(session).handle_start(profile, command.args)
    await session.commit()

    log_with_source(
        logger,
        "telegram",
        "info",
        "Start command handled",
        chat_id=profile.chat_id,
        outcome=result.outcome.value,
        locale=result.locale,
        user_id=result.user_id,
    )

    for reply in result.replies:
        try:
            await message.answer(reply)
        except Exception as e:
            log_with_source(
                logger,
                "telegram",
                "error",
                "Failed to send start reply",
                chat_id=profile.chat_id,
                error=str(e),
            )
