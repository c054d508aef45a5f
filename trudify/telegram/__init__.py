"""
Telegram channel.

The bot runs in webhook mode inside the FastAPI process and only does two
things: link a chat to a Trudify account (/start <token>) and deliver
notifications. Account linking rules live in
trudify.backend.services.telegram_link; this package is transport.

Requires TELEGRAM_BOT_TOKEN, and TELEGRAM_WEBHOOK_SECRET outside
development. With channel_telegram_enabled off, nothing here is loaded.
"""
