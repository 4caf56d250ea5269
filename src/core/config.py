"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

REWRITE_SCOPES = ("history", "current_message")


@dataclass(frozen=True)
class PipelineConfig:
    """Turn pipeline settings."""

    rewrite_scope: str = "history"
    completion_timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.rewrite_scope not in REWRITE_SCOPES:
            raise ValueError(f"Unsupported rewrite scope: {self.rewrite_scope}")
        if self.completion_timeout_seconds <= 0:
            raise ValueError("completion_timeout_seconds must be positive")


@dataclass(frozen=True)
class CompletionConfig:
    """Completion settings consumed by the OpenAI adapter."""

    model: str
    temperature: float
