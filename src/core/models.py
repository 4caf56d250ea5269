"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from core.errors import PersistenceWarning

MESSAGE_ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class Message:
    """One chat message. Rewriting produces a new instance."""

    role: str
    content: str


@dataclass(frozen=True)
class PersonaAttributeLevel:
    """A single persona trait tuned to a level in {0, 1, 2}."""

    attribute: str
    level: int


@dataclass(frozen=True)
class BlockRule:
    """Validated tenant content rule."""

    id: str
    company_id: str
    matcher: str
    substitution: str
    match_type: str = "literal"
    name: Optional[str] = None


@dataclass(frozen=True)
class TriggeredRule:
    """A rule that matched the inbound message, linked to its persisted id."""

    original: str
    substitution: str
    rule_id: str
    message_id: int


@dataclass(frozen=True)
class Categorization:
    """Classifier output attached to stored messages and audit events."""

    category: str
    complexity: str
    topics: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Turn:
    """One inbound message plus its history, scoped to a tenant conversation."""

    company_id: str
    user_id: str
    chat_block_id: str
    messages: Tuple[Message, ...]

    @property
    def inbound(self) -> Message:
        return self.messages[-1]

    @property
    def history(self) -> Tuple[Message, ...]:
        return self.messages[:-1]


class TurnState(str, Enum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    INBOUND_PERSISTED = "inbound_persisted"
    RULES_FETCHED = "rules_fetched"
    RULES_EVALUATED = "rules_evaluated"
    HISTORY_REWRITTEN = "history_rewritten"
    COMPLETION_INVOKED = "completion_invoked"
    OUTBOUND_PERSISTED = "outbound_persisted"
    DONE = "done"
    DONE_WITH_PERSISTENCE_WARNING = "done_with_persistence_warning"


@dataclass
class TurnResult:
    """Outcome of a turn that produced a reply."""

    state: TurnState
    reply: str
    inbound_message_id: int
    categorization: Categorization
    outbound_message_id: Optional[int] = None
    triggered_rules: Tuple[TriggeredRule, ...] = ()
    model_messages: Tuple[Message, ...] = ()
    warnings: List[PersistenceWarning] = field(default_factory=list)


@dataclass(frozen=True)
class AuditEvent:
    """Structured event for the audit/metrics sink."""

    type: str
    severity: str
    data: dict
    company_id: str
    user_id: str
