from __future__ import annotations

import pytest

from core.errors import ConfigurationError
from core.models import PersonaAttributeLevel
from core.persona import build_persona_prompt, parse_persona_attributes


def test_prompt_is_deterministic() -> None:
    levels = parse_persona_attributes({"humor": 2, "formality": 0, "curiosity": 1})

    first = build_persona_prompt(levels)
    second = build_persona_prompt(parse_persona_attributes({"humor": 2, "formality": 0, "curiosity": 1}))

    assert first == second
    assert "- Humor: Be playful and witty" in first
    assert "- Formality: Write casually" in first
    assert "- curiosity: moderate" in first


def test_attribute_order_is_preserved() -> None:
    prompt = build_persona_prompt(parse_persona_attributes([{"empathy": 1}, {"humor": 0}]))

    assert prompt.index("Empathy") < prompt.index("Humor")


@pytest.mark.parametrize("level", [3, -1, True, 1.0, 1.5, "2"])
def test_invalid_level_is_a_configuration_error(level) -> None:
    with pytest.raises(ConfigurationError):
        build_persona_prompt([PersonaAttributeLevel(attribute="humor", level=level)])


def test_empty_persona_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        build_persona_prompt([])


def test_repeated_attribute_is_a_configuration_error() -> None:
    levels = [
        PersonaAttributeLevel(attribute="humor", level=1),
        PersonaAttributeLevel(attribute="Humor", level=2),
    ]
    with pytest.raises(ConfigurationError):
        build_persona_prompt(levels)


@pytest.mark.parametrize("raw", [None, "humor", [{"humor": 1, "empathy": 2}], [["humor", 1]]])
def test_parse_rejects_unexpected_shapes(raw) -> None:
    with pytest.raises(ConfigurationError):
        parse_persona_attributes(raw)


def test_whole_number_float_level_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        build_persona_prompt(parse_persona_attributes({"humor": 1.0}))
