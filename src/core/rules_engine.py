"""Block rule validation and evaluation logic (core domain)."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from core.errors import RuleEvaluationError
from core.models import BlockRule, Message, TriggeredRule
from core.schemas import parse_block_rule

LOGGER = logging.getLogger(__name__)


def build_rules(rows: Iterable[dict], company_id: str) -> List[BlockRule]:
    """Validate raw rule rows and keep the ones scoped to ``company_id``.

    Storage order is preserved since it defines the substitution order.
    A schema violation on any row raises ``ConfigurationError``.
    """

    rules: List[BlockRule] = []
    for row in rows:
        rule = parse_block_rule(row)
        if rule is None:
            continue
        if rule.company_id != company_id:
            LOGGER.warning("Ignoring rule %s scoped to company %s", rule.id, rule.company_id)
            continue
        rules.append(rule)
    return rules


def _regex_hits(rule: BlockRule, text: str) -> List[str]:
    try:
        pattern = re.compile(rule.matcher)
    except re.error as exc:
        raise RuleEvaluationError(rule.id, f"invalid pattern {rule.matcher!r}: {exc}") from exc
    if pattern.search("") is not None:
        raise RuleEvaluationError(rule.id, f"pattern {rule.matcher!r} matches empty text")

    hits: List[str] = []
    for found in pattern.finditer(text):
        value = found.group(0)
        if value and value not in hits:
            hits.append(value)
    # Longest first so a shorter hit never splits a longer one during rewrite.
    return sorted(hits, key=len, reverse=True)


def _rule_hits(rule: BlockRule, text: str) -> List[str]:
    if rule.match_type == "regex":
        return _regex_hits(rule, text)
    return [rule.matcher] if rule.matcher in text else []


def evaluate_rules(
    message: Message,
    company_id: str,
    user_id: str,
    message_id: int,
    rules: Iterable[BlockRule],
) -> List[TriggeredRule]:
    """Return every triggered rule for the message, in rule order.

    Matching logic:
    - Every rule sees the original message content, never a rewritten one.
    - Literal rules trigger when the matcher is a substring of the content.
    - Regex rules yield one trigger per distinct matched text, so the rewrite
      step only ever does literal replacement.
    - A rule that cannot be evaluated is skipped with a warning.
    """

    text = message.content
    triggered: List[TriggeredRule] = []

    for rule in rules:
        try:
            hits = _rule_hits(rule, text)
        except RuleEvaluationError as exc:
            LOGGER.warning(
                "Skipping rule for company=%s user=%s: %s", company_id, user_id, exc
            )
            continue

        for original in hits:
            triggered.append(
                TriggeredRule(
                    original=original,
                    substitution=rule.substitution,
                    rule_id=rule.id,
                    message_id=message_id,
                )
            )

    return triggered
