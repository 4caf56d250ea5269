"""Error taxonomy for turn processing.

Fatal errors abort the turn before any reply exists. ``PersistenceWarning`` is
never raised out of the pipeline; it is attached to the turn result instead.
"""

from __future__ import annotations

from typing import Optional


class TurnError(Exception):
    """Base class for all turn-processing failures."""


class ConfigurationError(TurnError):
    """Bad or missing persona, malformed rule, or invalid request/schema."""


class DependencyError(TurnError):
    """An external collaborator failed; the turn is aborted."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class RuleEvaluationError(TurnError):
    """A single rule could not be evaluated and must be skipped."""

    def __init__(self, rule_id: str, message: str) -> None:
        super().__init__(f"rule {rule_id}: {message}")
        self.rule_id = rule_id


class PersistenceWarning(TurnError):
    """Outbound persistence failed after a successful completion."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
