"""Validation schemas for data crossing the trust boundary.

Raw rows, classifier output and inbound requests are checked with pydantic
before they become core models. Any violation surfaces as a
``ConfigurationError``.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import ConfigurationError
from core.models import BlockRule, Categorization, Message, Turn


class BlockRuleSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    company_id: str
    matcher: str = Field(min_length=1)
    substitution: str
    match_type: Literal["literal", "regex"] = "literal"
    name: Optional[str] = None
    enabled: bool = True


class CategorizationSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: str = Field(min_length=1)
    complexity: Literal["low", "medium", "high"]
    topics: List[str] = Field(default_factory=list)

    @field_validator("complexity", mode="before")
    @classmethod
    def _lower_complexity(cls, value):
        return value.lower() if isinstance(value, str) else value


class MessageSchema(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class TurnRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    messages: List[MessageSchema] = Field(min_length=1)
    company_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    chat_block_id: str = Field(min_length=1)

    def to_turn(self) -> Turn:
        return Turn(
            company_id=self.company_id,
            user_id=self.user_id,
            chat_block_id=self.chat_block_id,
            messages=tuple(Message(role=m.role, content=m.content) for m in self.messages),
        )


def parse_block_rule(row: dict) -> Optional[BlockRule]:
    """Validate one raw rule row. Disabled rules return None."""

    try:
        parsed = BlockRuleSchema.model_validate(row)
    except ValidationError as exc:
        raise ConfigurationError(f"Malformed block rule {row.get('id')!r}: {exc}") from exc
    if not parsed.enabled:
        return None
    return BlockRule(
        id=parsed.id,
        company_id=parsed.company_id,
        matcher=parsed.matcher,
        substitution=parsed.substitution,
        match_type=parsed.match_type,
        name=parsed.name,
    )


def parse_categorization(raw) -> Categorization:
    """Validate classifier output into a closed Categorization."""

    try:
        parsed = CategorizationSchema.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Classifier returned an unexpected shape: {exc}") from exc
    return Categorization(
        category=parsed.category,
        complexity=parsed.complexity,
        topics=frozenset(parsed.topics),
    )


def parse_turn_request(payload) -> Turn:
    """Validate an inbound chat request payload."""

    try:
        request = TurnRequest.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid chat request: {exc}") from exc
    return request.to_turn()
