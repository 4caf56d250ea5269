from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from adapters.openai_classifier import OpenAIClassifier
from adapters.openai_completion import OpenAICompletionInvoker
from core.config import CompletionConfig
from core.errors import ConfigurationError, DependencyError
from core.models import Message


class FakeCompletions:
    def __init__(self, content=None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_classifier_validates_json_output() -> None:
    completions = FakeCompletions('{"category": "support", "complexity": "HIGH", "topics": ["billing"]}')

    result = asyncio.run(OpenAIClassifier(_client(completions), "gpt-test").classify("refund please"))

    assert result.category == "support"
    assert result.complexity == "high"
    assert result.topics == frozenset({"billing"})
    assert completions.requests[0]["messages"][-1]["content"] == "refund please"


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        '{"category": "support"}',
        '{"category": "support", "complexity": "extreme", "topics": []}',
        '{"category": "support", "complexity": "low", "topics": [], "mood": "sad"}',
    ],
)
def test_classifier_schema_mismatch_is_configuration_error(content: str) -> None:
    classifier = OpenAIClassifier(_client(FakeCompletions(content)), "gpt-test")

    with pytest.raises(ConfigurationError):
        asyncio.run(classifier.classify("hello"))


def test_classifier_api_error_is_dependency_error() -> None:
    classifier = OpenAIClassifier(_client(FakeCompletions(error=OpenAIError("boom"))), "gpt-test")

    with pytest.raises(DependencyError):
        asyncio.run(classifier.classify("hello"))


def test_completion_renders_history_into_prompt() -> None:
    completions = FakeCompletions("  Sure thing.  ")
    invoker = OpenAICompletionInvoker(_client(completions), CompletionConfig(model="gpt-test", temperature=0.8))
    history = [Message(role="user", content="hi"), Message(role="assistant", content="hello")]

    reply = asyncio.run(invoker.invoke_completion("Be nice.", history, "what now?"))

    assert reply == "Sure thing."
    request = completions.requests[0]
    assert request["temperature"] == 0.8
    prompt = request["messages"][0]["content"]
    assert prompt.startswith("Be nice.")
    assert "Current conversation:\nuser: hi\nassistant: hello" in prompt
    assert prompt.endswith("User: what now?\nAI:")


def test_completion_empty_reply_is_dependency_error() -> None:
    invoker = OpenAICompletionInvoker(
        _client(FakeCompletions("")), CompletionConfig(model="gpt-test", temperature=0.8)
    )

    with pytest.raises(DependencyError):
        asyncio.run(invoker.invoke_completion("Be nice.", [], "hello"))
