"""
Unit Test Fixtures.

Fixtures for unit tests - external dependencies are mocked.
Unit tests should be fast and isolated, never touching real databases
or the Telegram Bot API.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from trudify.telegram.services.sender import SendResult


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Usage:
        def test_service(mock_db_session: AsyncMock):
            service = TaskService(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.get = AsyncMock()
    return session


# =============================================================================
# Telegram Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_bot() -> MagicMock:
    """
    Mock aiogram Bot.

    send_message returns a message with message_id=1 unless a test sets
    side_effect.
    """
    bot = MagicMock()
    bot.send_message = AsyncMock(return_value=MagicMock(message_id=1))
    bot.set_webhook = AsyncMock(return_value=True)
    bot.delete_webhook = AsyncMock(return_value=True)
    bot.session = MagicMock()
    bot.session.close = AsyncMock()
    return bot


@pytest.fixture
def mock_sender() -> MagicMock:
    """TelegramSender stand-in whose sends succeed."""
    sender = MagicMock()
    sender.send = AsyncMock(
        side_effect=lambda chat_id, text, **kwargs: SendResult(success=True, chat_id=chat_id, message_id=1)
    )
    return sender


@pytest.fixture
def mock_message() -> MagicMock:
    """
    Mock aiogram Message sent from a private chat.

    Usage:
        async def test_handler(mock_message):
            await cmd_start(mock_message, command, session)
            mock_message.answer.assert_awaited()
    """
    message = MagicMock()
    message.chat.id = 555123
    message.from_user.id = 555123
    message.from_user.username = "petar_pro"
    message.from_user.first_name = "Petar"
    message.from_user.last_name = "Petrov"
    message.text = "/start"
    message.answer = AsyncMock()
    return message


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                ...
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
