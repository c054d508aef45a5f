"""
Profanity Screen.

Checks free-text task fields against per-locale regular expressions from
moderation.yaml. Every locale's list is applied regardless of the request
locale, since mixed-language posts are common.
"""

import re
from functools import lru_cache

from trudify.backend.core.config import get_app_config
from trudify.backend.core.exceptions import ValidationError


@lru_cache
def _compiled_patterns() -> tuple[re.Pattern[str], ...]:
    lists = get_app_config().moderation.profanity
    return tuple(
        re.compile(pattern, re.IGNORECASE | re.UNICODE)
        for patterns in lists.values()
        for pattern in patterns
    )


def contains_profanity(text: str | None) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in _compiled_patterns())


def screen_fields(fields: dict[str, str | None]) -> None:
    """
    Raise ValidationError (code VAL_PROFANITY) naming every offending field.
    """
    flagged = [name for name, value in fields.items() if contains_profanity(value)]
    if flagged:
        raise ValidationError(
            "Inappropriate language detected",
            details={"fields": flagged},
            code="VAL_PROFANITY",
        )
