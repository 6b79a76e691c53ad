import pytest

from product_creator.extractors.prompts import (
    VISION_ANALYSIS_CONFIG,
    VISION_PROMPTS,
    format_vision_prompt,
)
from product_creator.models.schemas import Language


@pytest.mark.parametrize("language", list(Language))
def test_every_language_has_prompts(language):
    system_prompt, user_prompt = format_vision_prompt(language, image_count=3)
    assert system_prompt == VISION_PROMPTS[language][0]
    assert "3" in user_prompt
    assert '"productType"' in user_prompt
    assert "{" in user_prompt and "{{" not in user_prompt


def test_hint_is_included_when_given():
    _, user_prompt = format_vision_prompt("en", user_hint="  wicker mat 1x3 m  ")
    assert '"wicker mat 1x3 m"' in user_prompt
    assert "<seller_hint>" in user_prompt


def test_blank_hint_is_ignored():
    _, user_prompt = format_vision_prompt("en", user_hint="   ")
    assert "<seller_hint>" not in user_prompt


def test_polish_prompt_is_default():
    system_prompt, _ = format_vision_prompt()
    assert system_prompt == VISION_PROMPTS[Language.PL][0]


def test_unknown_language_rejected():
    with pytest.raises(ValueError):
        format_vision_prompt("fr")


def test_prompt_config_repr():
    assert repr(VISION_ANALYSIS_CONFIG) == "PromptConfig(vision_analysis, temp=0.3)"
