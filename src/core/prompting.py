"""Completion prompt rendering."""

from __future__ import annotations

from typing import Iterable

from core.models import Message

TEMPLATE = """{persona}

Current conversation:
{chat_history}

User: {input}
AI:"""


def format_message(message: Message) -> str:
    return f"{message.role}: {message.content}"


def render_prompt(system_prompt: str, history: Iterable[Message], user_input: str) -> str:
    """Render the single-string prompt sent to the completion model."""

    chat_history = "\n".join(format_message(message) for message in history)
    return TEMPLATE.format(persona=system_prompt, chat_history=chat_history, input=user_input)
