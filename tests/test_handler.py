from __future__ import annotations

import asyncio

from core.audit import AuditEmitter
from core.config import PipelineConfig
from core.errors import DependencyError
from core.models import Categorization, Message, TurnResult, TurnState
from core.pipeline import TurnPipeline
from handler import handle_chat_request


class StubPipeline:
    def __init__(self, error: Exception | None = None, warnings: list | None = None) -> None:
        self.error = error
        self.warnings = warnings or []
        self.turns = []

    async def process(self, turn):
        self.turns.append(turn)
        if self.error:
            raise self.error
        return TurnResult(
            state=TurnState.DONE,
            reply="Hello!",
            inbound_message_id=1,
            categorization=Categorization(category="greeting", complexity="low"),
            model_messages=(Message(role="user", content="hi"),),
            warnings=list(self.warnings),
        )


def _payload(**overrides) -> dict:
    payload = {
        "messages": [{"role": "user", "content": "hi"}],
        "company_id": "acme",
        "user_id": "u1",
        "chat_block_id": 9,
    }
    payload.update(overrides)
    return payload


def test_success_returns_reply_body() -> None:
    pipeline = StubPipeline()

    response = asyncio.run(handle_chat_request(pipeline, _payload()))

    assert response.status == 200
    assert response.body["text"] == "Hello!"
    assert response.body["warnings"] == []
    assert pipeline.turns[0].chat_block_id == "9"
    assert pipeline.turns[0].inbound.content == "hi"


def test_invalid_request_has_no_body() -> None:
    pipeline = StubPipeline()

    for payload in (_payload(messages=[]), _payload(company_id=""), ["not", "an", "object"]):
        response = asyncio.run(handle_chat_request(pipeline, payload))
        assert response.status == 400
        assert response.body is None

    assert pipeline.turns == []


def test_unknown_role_is_rejected() -> None:
    response = asyncio.run(
        handle_chat_request(StubPipeline(), _payload(messages=[{"role": "robot", "content": "x"}]))
    )
    assert response.status == 400


def test_dependency_failure_maps_to_502() -> None:
    pipeline = StubPipeline(error=DependencyError("completion", "timed out"))

    response = asyncio.run(handle_chat_request(pipeline, _payload()))

    assert response.status == 502
    assert response.body is None
    assert "completion" in response.error


class _PersonaStore:
    def __init__(self, persona) -> None:
        self.persona = persona
        self.inbound: list[str] = []

    def persist_inbound(self, turn, content, categorization) -> int:
        self.inbound.append(content)
        return 1

    def persist_outbound(self, turn, reply, categorization) -> int:
        return 2

    def fetch_rules(self, company_id: str) -> list[dict]:
        return []

    def fetch_persona(self, chat_block_id: str):
        return self.persona


class _Classifier:
    async def classify(self, text: str) -> Categorization:
        return Categorization(category="greeting", complexity="low")


class _Completion:
    async def invoke_completion(self, system_prompt, history, user_input) -> str:
        return "Hello!"


class _Sink:
    async def record(self, event) -> None:
        pass


def test_float_persona_level_maps_to_400() -> None:
    store = _PersonaStore({"humor": 1.0})
    audit = AuditEmitter(_Sink())
    pipeline = TurnPipeline(
        store=store,
        rule_source=store,
        persona_source=store,
        classifier=_Classifier(),
        completion=_Completion(),
        audit=audit,
        config=PipelineConfig(),
    )

    response = asyncio.run(handle_chat_request(pipeline, _payload()))

    assert response.status == 400
    assert response.body is None
    assert store.inbound == []
