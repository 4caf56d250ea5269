"""History rewriting with triggered rule substitutions (core domain)."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from core.models import Message, TriggeredRule


def apply_substitutions(text: str, triggered_rules: Iterable[TriggeredRule]) -> str:
    """Replace every occurrence of each rule's original, one rule at a time."""

    for rule in triggered_rules:
        text = text.replace(rule.original, rule.substitution)
    return text


def rewrite_messages(
    messages: Sequence[Message],
    triggered_rules: Sequence[TriggeredRule],
    scope: str = "history",
) -> List[Message]:
    """Return the model-facing copy of ``messages`` with substitutions applied.

    With ``scope="history"`` every message is rewritten, since an original
    flagged in this turn may also appear in earlier turns. ``"current_message"``
    only touches the last message. Inputs are never mutated.
    """

    if scope not in ("history", "current_message"):
        raise ValueError(f"Unsupported rewrite scope: {scope}")

    rewritten: List[Message] = []
    last_index = len(messages) - 1
    for index, message in enumerate(messages):
        if scope == "current_message" and index != last_index:
            rewritten.append(message)
            continue
        content = apply_substitutions(message.content, triggered_rules)
        rewritten.append(Message(role=message.role, content=content))
    return rewritten
