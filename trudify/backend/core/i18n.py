"""
Localization Helpers.

Locale resolution and message catalog lookup for server-rendered text
(notification titles and bodies, Telegram bot replies, relative dates).

Catalogs live in config/i18n/<locale>.yaml. Placeholders use single braces
({taskTitle}); placeholders with no value are left in place rather than
raising. Telegram strings are HTML: use translate_html so that interpolated
values are escaped while the catalog markup is kept.
"""

from datetime import datetime
from functools import lru_cache
from typing import Any

from aiogram.utils.text_decorations import html_decoration

from trudify.backend.core.config import get_app_config, load_yaml_config
from trudify.backend.core.utils import utc_now

_LOCALE_ALIASES = {"ua": "uk"}


class _SafeFormatDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def default_locale() -> str:
    return get_app_config().application.locales.default


def supported_locales() -> list[str]:
    return get_app_config().application.locales.supported


def normalize_locale(value: str | None) -> str:
    """Map a locale tag (bg, en-US, ua, ...) to a supported locale, else the default."""
    if not value:
        return default_locale()
    code = value.strip().lower().replace("_", "-").split("-")[0]
    code = _LOCALE_ALIASES.get(code, code)
    return code if code in supported_locales() else default_locale()


def negotiate_locale(header_value: str | None) -> str:
    """Pick the first supported locale from an Accept-Language style value."""
    if not header_value:
        return default_locale()
    for part in header_value.split(","):
        tag = part.split(";")[0].strip().lower()
        code = _LOCALE_ALIASES.get(tag.split("-")[0], tag.split("-")[0])
        if code in supported_locales():
            return code
    return default_locale()


@lru_cache
def get_catalog(locale: str) -> dict[str, Any]:
    """Load (and cache) the message catalog for a supported locale."""
    return load_yaml_config(f"{locale}.yaml", directory="i18n")


def render(template: str, data: dict[str, Any] | None = None) -> str:
    """Interpolate {placeholders} in a catalog string."""
    return template.format_map(_SafeFormatDict(data or {}))


def lookup(locale: str, key: str) -> str | None:
    """
    Look up a dotted catalog key (e.g. 'notifications.task_completed.title').

    Falls back to the default locale when the key is missing.
    """
    for candidate in (normalize_locale(locale), default_locale()):
        node: Any = get_catalog(candidate)
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                node = None
                break
            node = node[part]
        if isinstance(node, str):
            return node
    return None


def translate(locale: str, key: str, data: dict[str, Any] | None = None) -> str | None:
    template = lookup(locale, key)
    if template is None:
        return None
    return render(template, data)


def translate_html(locale: str, key: str, data: dict[str, Any] | None = None) -> str | None:
    """Like translate, with string values HTML-escaped for Telegram's HTML parse mode."""
    escaped = {
        name: html_decoration.quote(value) if isinstance(value, str) else value
        for name, value in (data or {}).items()
    }
    return translate(locale, key, escaped)


def format_relative_date(moment: datetime | None, locale: str, now: datetime | None = None) -> str | None:
    """
    Describe how long ago a (naive UTC) timestamp was, in the given locale.

    Returns None when no timestamp is given.
    """
    if moment is None:
        return None
    seconds = max(((now or utc_now()) - moment).total_seconds(), 0)

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return translate(locale, "relative_time.just_now")
    if hours < 1:
        return translate(locale, "relative_time.minutes_ago", {"count": minutes})
    if days < 1:
        return translate(locale, "relative_time.hours_ago", {"count": hours})
    if days < 30:
        return translate(locale, "relative_time.days_ago", {"count": days})
    if days < 365:
        return translate(locale, "relative_time.months_ago", {"count": days // 30})
    return translate(locale, "relative_time.years_ago", {"count": days // 365})
