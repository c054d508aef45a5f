"""
Unit Tests for the Profanity Screen.
"""

import pytest

from trudify.backend.core.exceptions import ValidationError
from trudify.backend.services.profanity import contains_profanity, screen_fields


class TestContainsProfanity:
    @pytest.mark.parametrize("text", [
        "What the FUCK is this",
        "this is shitty work",
        "Ремонт, курва мащаба",
        "Сука, не работает",
        "Ебал съм го този кран",
        "Копеле, ела да оправиш тока",
    ])
    def test_flags_listed_words_in_any_locale(self, text):
        assert contains_profanity(text) is True

    @pytest.mark.parametrize("text", [
        "Fix a leaking kitchen tap",
        "Shiitake mushrooms for the party",
        "Монтаж на климатик в Пловдив",
        "Ремонт на колелото на Себастиан в Себастопол",
        "Смяна на педалите и спирачките на колелото",
        "Ребалансиране на гуми",
        None,
        "",
    ])
    def test_clean_text(self, text):
        assert contains_profanity(text) is False


class TestScreenFields:
    def test_clean_fields_pass(self):
        screen_fields({"title": "Paint the fence", "description": "Two coats please", "requirements": None})

    def test_names_every_offending_field(self):
        with pytest.raises(ValidationError) as exc_info:
            screen_fields({"title": "fucking tap", "description": "fine", "requirements": "no bitching"})

        assert exc_info.value.code == "VAL_PROFANITY"
        assert exc_info.value.details == {"fields": ["title", "requirements"]}


class TestConfiguredPatterns:
    def test_every_pattern_is_anchored_at_a_word_boundary(self):
        from trudify.backend.core.config import get_app_config

        for locale, patterns in get_app_config().moderation.profanity.items():
            for pattern in patterns:
                assert pattern.startswith(r"\b"), (locale, pattern)
