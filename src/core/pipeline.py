"""Turn processing pipeline.

The pipeline enforces a strict order:
1) Build the persona prompt and classify the inbound message (concurrently)
2) Persist the inbound message with its category
3) Fetch and validate the tenant's block rules
4) Evaluate rules against the original inbound text
5) Rewrite the model-facing history with triggered substitutions
6) Invoke the completion
7) Persist the reply

Any failure before step 6 finishes aborts the turn with no reply. A failed
step 7 still returns the reply, with a PersistenceWarning attached.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import Any, Callable, Sequence, TypeVar

from core.audit import MESSAGE_CREATED, PERSIST_FAILED, RULE_TRIGGERED, AuditEmitter
from core.config import PipelineConfig
from core.errors import ConfigurationError, DependencyError, PersistenceWarning, TurnError
from core.models import AuditEvent, Categorization, Message, Turn, TurnResult, TurnState
from core.persona import build_persona_prompt, parse_persona_attributes
from core.ports import Classifier, CompletionInvoker, PersonaSource, RuleSource, TurnStore
from core.rewriter import rewrite_messages
from core.rules_engine import build_rules, evaluate_rules

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class _Progress:
    """Tracks the current state of one turn for logging on failure."""

    def __init__(self, turn: Turn) -> None:
        self.turn = turn
        self.state = TurnState.RECEIVED

    def advance(self, state: TurnState) -> None:
        LOGGER.debug("Turn %s: %s -> %s", self.turn.chat_block_id, self.state.value, state.value)
        self.state = state


def _call_dependency(stage: str, fn: Callable[..., T], *args: Any) -> T:
    try:
        return fn(*args)
    except TurnError:
        raise
    except Exception as exc:
        raise DependencyError(stage, str(exc) or type(exc).__name__) from exc


class TurnPipeline:
    """Orchestrates classification, rules, rewriting, completion and storage."""

    def __init__(
        self,
        store: TurnStore,
        rule_source: RuleSource,
        persona_source: PersonaSource,
        classifier: Classifier,
        completion: CompletionInvoker,
        audit: AuditEmitter,
        config: PipelineConfig,
    ) -> None:
        self._store = store
        self._rules = rule_source
        self._personas = persona_source
        self._classifier = classifier
        self._completion = completion
        self._audit = audit
        self._config = config

    async def process(self, turn: Turn) -> TurnResult:
        """Run one turn. Raises ConfigurationError or DependencyError on fatal failure."""

        progress = _Progress(turn)
        LOGGER.info(
            "Turn received company=%s user=%s chat_block=%s",
            turn.company_id,
            turn.user_id,
            turn.chat_block_id,
        )
        try:
            return await self._run(turn, progress)
        except TurnError as exc:
            LOGGER.error(
                "Turn aborted at %s company=%s user=%s chat_block=%s: %s",
                progress.state.value,
                turn.company_id,
                turn.user_id,
                turn.chat_block_id,
                exc,
            )
            raise

    async def _run(self, turn: Turn, progress: _Progress) -> TurnResult:
        inbound = turn.inbound

        # Persona and classification have no data dependency; both must be
        # done before the inbound row can carry its category.
        outcomes = await asyncio.gather(
            asyncio.to_thread(self._build_system_prompt, turn),
            self._classify(inbound.content),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        system_prompt, categorization = outcomes
        progress.advance(TurnState.CLASSIFIED)

        self._emit(
            turn,
            MESSAGE_CREATED,
            "INFO",
            {
                "message": inbound.content,
                "category": categorization.category,
                "complexity": categorization.complexity,
                "topics": sorted(categorization.topics),
            },
        )

        # The stored inbound row keeps the original text for audit; only the
        # model-facing copy is rewritten below.
        message_id = _call_dependency(
            "persist_inbound", self._store.persist_inbound, turn, inbound.content, categorization
        )
        progress.advance(TurnState.INBOUND_PERSISTED)

        rows = _call_dependency("fetch_rules", self._rules.fetch_rules, turn.company_id)
        rules = build_rules(rows, turn.company_id)
        progress.advance(TurnState.RULES_FETCHED)

        triggered = evaluate_rules(inbound, turn.company_id, turn.user_id, message_id, rules)
        progress.advance(TurnState.RULES_EVALUATED)
        if triggered:
            LOGGER.info("%s rule(s) triggered for message %s", len(triggered), message_id)
            self._emit(
                turn,
                RULE_TRIGGERED,
                "INFO",
                {
                    "message": inbound.content,
                    "triggered_rules": [asdict(rule) for rule in triggered],
                },
            )

        model_messages = rewrite_messages(turn.messages, triggered, self._config.rewrite_scope)
        progress.advance(TurnState.HISTORY_REWRITTEN)

        reply = await self._complete(system_prompt, model_messages)
        progress.advance(TurnState.COMPLETION_INVOKED)

        result = TurnResult(
            state=TurnState.DONE,
            reply=reply,
            inbound_message_id=message_id,
            categorization=categorization,
            triggered_rules=tuple(triggered),
            model_messages=tuple(model_messages),
        )

        try:
            result.outbound_message_id = self._store.persist_outbound(turn, reply, categorization)
        except Exception as exc:
            warning = PersistenceWarning(
                f"Reply for chat block {turn.chat_block_id} was not stored: {exc}", cause=exc
            )
            LOGGER.warning(
                "Outbound persistence failed company=%s user=%s chat_block=%s: %s",
                turn.company_id,
                turn.user_id,
                turn.chat_block_id,
                exc,
            )
            self._emit(
                turn,
                PERSIST_FAILED,
                "WARNING",
                {"inbound_message_id": message_id, "reply": reply, "error": str(exc)},
            )
            result.warnings.append(warning)
            result.state = TurnState.DONE_WITH_PERSISTENCE_WARNING
            progress.advance(result.state)
            return result

        progress.advance(TurnState.OUTBOUND_PERSISTED)
        progress.advance(TurnState.DONE)
        return result

    def _build_system_prompt(self, turn: Turn) -> str:
        raw = _call_dependency("fetch_persona", self._personas.fetch_persona, turn.chat_block_id)
        if raw is None:
            raise ConfigurationError(f"No persona linked to chat block {turn.chat_block_id}")
        return build_persona_prompt(parse_persona_attributes(raw))

    async def _classify(self, text: str) -> Categorization:
        try:
            return await self._classifier.classify(text)
        except TurnError:
            raise
        except Exception as exc:
            raise DependencyError("classify", str(exc) or type(exc).__name__) from exc

    async def _complete(self, system_prompt: str, model_messages: Sequence[Message]) -> str:
        history = model_messages[:-1]
        user_input = model_messages[-1].content
        timeout = self._config.completion_timeout_seconds
        try:
            return await asyncio.wait_for(
                self._completion.invoke_completion(system_prompt, history, user_input),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise DependencyError("completion", f"timed out after {timeout}s") from exc
        except TurnError:
            raise
        except Exception as exc:
            raise DependencyError("completion", str(exc) or type(exc).__name__) from exc

    def _emit(self, turn: Turn, event_type: str, severity: str, data: dict) -> None:
        self._audit.emit(
            AuditEvent(
                type=event_type,
                severity=severity,
                data=data,
                company_id=turn.company_id,
                user_id=turn.user_id,
            )
        )
