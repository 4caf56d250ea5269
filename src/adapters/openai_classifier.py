"""OpenAI-backed message classifier adapter.

Asks the model for a JSON object and validates it before it reaches the core.
"""

from __future__ import annotations

import json
import logging

from openai import AsyncOpenAI, OpenAIError

from core.errors import ConfigurationError, DependencyError
from core.models import Categorization
from core.schemas import parse_categorization

LOGGER = logging.getLogger(__name__)

CLASSIFY_INSTRUCTIONS = """Classify the user's message.
Respond with a JSON object with exactly these keys:
- "category": a short lowercase label for the kind of request
- "complexity": one of "low", "medium", "high"
- "topics": a list of short lowercase topic strings"""


class OpenAIClassifier:
    """Classifier port implementation using chat completions in JSON mode."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    async def classify(self, text: str) -> Categorization:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=0,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": CLASSIFY_INSTRUCTIONS},
                    {"role": "user", "content": text},
                ],
            )
        except OpenAIError as exc:
            raise DependencyError("classify", str(exc)) from exc

        content = response.choices[0].message.content or ""
        try:
            raw = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Classifier returned non-JSON output: {content[:200]!r}") from exc

        categorization = parse_categorization(raw)
        LOGGER.debug("Classified message as %s/%s", categorization.category, categorization.complexity)
        return categorization
