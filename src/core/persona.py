"""Persona attribute parsing and system-prompt synthesis (core domain)."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from core.errors import ConfigurationError
from core.models import PersonaAttributeLevel

VALID_LEVELS = (0, 1, 2)

# Curated phrasing per level for traits we know how to describe well.
TRAIT_PHRASES = {
    "humor": (
        "Keep a serious tone and avoid jokes.",
        "Use light humor when it fits the conversation.",
        "Be playful and witty, weaving humor into most replies.",
    ),
    "formality": (
        "Write casually, like talking to a friend.",
        "Use a neutral, professional register.",
        "Be formal and polished in every reply.",
    ),
    "empathy": (
        "Stay matter-of-fact and focus on the facts.",
        "Acknowledge the user's feelings when they come up.",
        "Lead with warmth and validate the user's feelings.",
    ),
    "verbosity": (
        "Answer as briefly as possible.",
        "Give reasonably complete answers without padding.",
        "Give thorough, detailed answers with examples.",
    ),
    "creativity": (
        "Stick to conventional, well-established answers.",
        "Offer an original idea when it helps.",
        "Be inventive and suggest unexpected ideas.",
    ),
    "directness": (
        "Be diplomatic and soften difficult messages.",
        "Be clear while staying tactful.",
        "Be blunt and get straight to the point.",
    ),
    "enthusiasm": (
        "Keep an even, calm energy.",
        "Show some enthusiasm for the user's goals.",
        "Be energetic and upbeat throughout.",
    ),
}

GENERIC_INTENSITY = ("low", "moderate", "high")


def parse_persona_attributes(raw) -> Tuple[PersonaAttributeLevel, ...]:
    """Normalize stored persona attributes into ordered attribute levels.

    Accepts either a mapping ``{"humor": 2}`` or a list of single-entry
    mappings ``[{"humor": 2}, {"formality": 0}]``.
    """

    if raw is None:
        raise ConfigurationError("Persona has no attributes")

    if isinstance(raw, dict):
        pairs = list(raw.items())
    elif isinstance(raw, (list, tuple)):
        pairs = []
        for entry in raw:
            if not isinstance(entry, dict) or len(entry) != 1:
                raise ConfigurationError(f"Persona attribute entry must map one name to a level: {entry!r}")
            pairs.extend(entry.items())
    else:
        raise ConfigurationError(f"Unsupported persona attribute shape: {type(raw).__name__}")

    return tuple(PersonaAttributeLevel(attribute=str(name), level=level) for name, level in pairs)


def _validate(levels: Iterable[PersonaAttributeLevel]) -> List[PersonaAttributeLevel]:
    checked: List[PersonaAttributeLevel] = []
    seen: set[str] = set()
    for item in levels:
        name = item.attribute.strip()
        if not name:
            raise ConfigurationError("Persona attribute name is empty")
        # Exact int only: bools are an int subclass and 1.0 == 1.
        if type(item.level) is not int or item.level not in VALID_LEVELS:
            raise ConfigurationError(f"Persona attribute {name!r} has invalid level {item.level!r}")
        key = name.lower()
        if key in seen:
            raise ConfigurationError(f"Persona attribute {name!r} is repeated")
        seen.add(key)
        checked.append(item)
    if not checked:
        raise ConfigurationError("Persona has no attributes")
    return checked


def _describe(item: PersonaAttributeLevel) -> str:
    name = item.attribute.strip()
    phrases = TRAIT_PHRASES.get(name.lower())
    if phrases:
        return f"- {name.capitalize()}: {phrases[item.level]}"
    return f"- {name}: {GENERIC_INTENSITY[item.level]}"


def build_persona_prompt(levels: Iterable[PersonaAttributeLevel]) -> str:
    """Build the system prompt fragment for a persona.

    Output is a pure function of the ordered input, so the same persona
    always produces the same fragment.
    """

    lines = [
        "You are a helpful AI assistant.",
        "Shape every reply according to these personality traits:",
    ]
    lines.extend(_describe(item) for item in _validate(levels))
    return "\n".join(lines)
