"""
Trudify Backend.

- backend/: REST API, database models, task lifecycle, notifications, configuration
- telegram/: Telegram bot integration (aiogram v3), account linking
"""
