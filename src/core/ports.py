"""Ports (interfaces) used by the turn pipeline.

Ports define the minimal contracts for storage, model and audit adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from core.models import AuditEvent, Categorization, Message, Turn


class TurnStore(Protocol):
    """Message persistence required by the pipeline."""

    def persist_inbound(self, turn: Turn, content: str, categorization: Categorization) -> int:
        ...

    def persist_outbound(self, turn: Turn, reply: str, categorization: Categorization) -> int:
        ...


class RuleSource(Protocol):
    """Returns raw rule rows for a tenant, in evaluation order."""

    def fetch_rules(self, company_id: str) -> list[dict]:
        ...


class PersonaSource(Protocol):
    """Returns raw persona attributes for a conversation, or None."""

    def fetch_persona(self, chat_block_id: str) -> Optional[Any]:
        ...


class Classifier(Protocol):
    async def classify(self, text: str) -> Categorization:
        ...


class CompletionInvoker(Protocol):
    async def invoke_completion(
        self, system_prompt: str, history: Sequence[Message], user_input: str
    ) -> str:
        ...


class AuditSink(Protocol):
    """Best-effort sink for structured audit events."""

    async def record(self, event: AuditEvent) -> None:
        ...
