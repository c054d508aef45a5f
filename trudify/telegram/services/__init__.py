"""Outbound Bot API calls (notification delivery, /start replies use aiogram directly)."""
