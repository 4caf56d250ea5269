"""OpenAI completion adapter.

Renders the persona prompt, formatted history and current input into a single
prompt and returns the generated reply text.
"""

from __future__ import annotations

from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from core.config import CompletionConfig
from core.errors import DependencyError
from core.models import Message
from core.prompting import render_prompt


class OpenAICompletionInvoker:
    """CompletionInvoker port implementation. No retries are attempted here."""

    def __init__(self, client: AsyncOpenAI, config: CompletionConfig) -> None:
        self._client = client
        self._config = config

    async def invoke_completion(
        self, system_prompt: str, history: Sequence[Message], user_input: str
    ) -> str:
        prompt = render_prompt(system_prompt, history, user_input)
        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                temperature=self._config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as exc:
            raise DependencyError("completion", str(exc)) from exc

        text = response.choices[0].message.content
        if not text:
            raise DependencyError("completion", "model returned an empty reply")
        return text.strip()
