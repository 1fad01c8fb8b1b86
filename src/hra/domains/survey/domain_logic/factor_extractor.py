"""Factor extraction: canonical answers -> qualitative risk factors.

The rule table is an ordered tuple of records. Each predicate reports a
``RuleOutcome`` instead of raising for unexpected value shapes, so one odd
answer never sinks the whole batch.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from hra.domains.survey.domain_logic.survey_models import FactorDetail, FactorResult

logger = logging.getLogger(__name__)

Answers = Mapping[str, Any]


class RuleOutcome(enum.Enum):
    MATCHED = "matched"
    NOT_MATCHED = "not_matched"
    INAPPLICABLE = "inapplicable"


@dataclass(frozen=True)
class FactorRule:
    id: str
    label: str
    weight: float
    predicate: Callable[[Answers], RuleOutcome]


# ---------------------------------------------------------------------------
# Predicate helpers
# ---------------------------------------------------------------------------

def _outcome(matched: bool) -> RuleOutcome:
    return RuleOutcome.MATCHED if matched else RuleOutcome.NOT_MATCHED


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _one_of(field_name: str, values: frozenset[str]) -> Callable[[Answers], RuleOutcome]:
    """Case-insensitive membership test on a string answer."""

    def check(answers: Answers) -> RuleOutcome:
        value = answers.get(field_name)
        if value is None:
            return RuleOutcome.NOT_MATCHED
        if not isinstance(value, str):
            return RuleOutcome.INAPPLICABLE
        return _outcome(value.lower() in values)

    return check


def _numeric_range(
    field_name: str, lo: float | None = None, hi: float | None = None
) -> Callable[[Answers], RuleOutcome]:
    """``lo <= value < hi`` on a numeric answer; either bound may be open."""

    def check(answers: Answers) -> RuleOutcome:
        value = answers.get(field_name)
        if not _is_number(value):
            return RuleOutcome.NOT_MATCHED
        if lo is not None and value < lo:
            return RuleOutcome.NOT_MATCHED
        if hi is not None and value >= hi:
            return RuleOutcome.NOT_MATCHED
        return RuleOutcome.MATCHED

    return check


def _smoking(answers: Answers) -> RuleOutcome:
    return _outcome(answers.get("smoker") is True)


_POOR_SLEEP_WORDS = frozenset({"poor", "bad", "irregular"})


def _poor_sleep(answers: Answers) -> RuleOutcome:
    sleep = answers.get("sleep")
    if _is_number(sleep):
        return _outcome(sleep < 6 or sleep > 9)
    if sleep is None:
        return RuleOutcome.NOT_MATCHED
    if not isinstance(sleep, str):
        return RuleOutcome.INAPPLICABLE
    return _outcome(sleep.lower() in _POOR_SLEEP_WORDS)


# ---------------------------------------------------------------------------
# Rule table (declaration order breaks weight ties)
# ---------------------------------------------------------------------------

FACTOR_RULES: tuple[FactorRule, ...] = (
    FactorRule("smoking", "smoking", 1.0, _smoking),
    FactorRule(
        "poor_diet", "poor diet", 0.9,
        _one_of("diet", frozenset({"high sugar", "junk", "fast food", "unhealthy"})),
    ),
    FactorRule(
        "low_exercise", "low exercise", 0.85,
        _one_of("exercise", frozenset({"rarely", "never", "sedentary", "none"})),
    ),
    FactorRule(
        "excessive_alcohol", "excessive alcohol", 0.8,
        _one_of("alcohol", frozenset({"heavy", "frequent", "daily"})),
    ),
    FactorRule("poor_sleep", "poor sleep", 0.7, _poor_sleep),
    FactorRule(
        "high_stress", "high stress", 0.75,
        _one_of("stress", frozenset({"high", "severe", "chronic"})),
    ),
    FactorRule("obesity", "obesity", 0.85, _numeric_range("bmi", lo=30)),
    FactorRule("overweight", "overweight", 0.6, _numeric_range("bmi", lo=25, hi=30)),
    FactorRule("advanced_age", "advanced age", 0.5, _numeric_range("age", lo=60)),
    FactorRule("middle_age", "middle age", 0.3, _numeric_range("age", lo=40, hi=60)),
)

FACTOR_LABELS = [rule.label for rule in FACTOR_RULES]
_LABELS_BY_ID = {rule.id: rule.label for rule in FACTOR_RULES}

_CONFIDENCE_FIELDS = ["smoker", "diet", "exercise"]


def to_factor_labels(names: list[Any]) -> list[Any]:
    """Map rule ids (``low_exercise``) to factor labels; anything else passes through."""
    return [_LABELS_BY_ID.get(name, name) if isinstance(name, str) else name for name in names]


def _evaluate(rule: FactorRule, answers: Answers) -> RuleOutcome:
    try:
        return rule.predicate(answers)
    except Exception:
        logger.debug("Factor rule %s could not be evaluated; skipping", rule.id, exc_info=True)
        return RuleOutcome.INAPPLICABLE


def calculate_factor_confidence(answers: Answers, extracted: list[str]) -> float:
    confidence = 1.0
    for field_name in _CONFIDENCE_FIELDS:
        if answers.get(field_name) is None:
            confidence -= 0.1

    # Thin input with nothing found is the least trustworthy case
    if not extracted and len(answers) < 3:
        confidence -= 0.2

    return max(0.0, min(1.0, round(confidence, 2)))


def extract_factors(answers: Answers) -> FactorResult:
    """Evaluate every rule and return matched factors, heaviest first."""
    details: list[FactorDetail] = []

    for rule in FACTOR_RULES:
        outcome = _evaluate(rule, answers)
        if outcome is RuleOutcome.MATCHED:
            details.append(FactorDetail(id=rule.id, label=rule.label, weight=rule.weight))
        elif outcome is RuleOutcome.INAPPLICABLE:
            logger.debug("Factor rule %s inapplicable to supplied answers", rule.id)

    # sorted() is stable, so equal weights keep table order
    details = sorted(details, key=lambda d: d.weight, reverse=True)
    factors = [d.label for d in details]

    return FactorResult(
        factors=factors,
        factor_details=details,
        confidence=calculate_factor_confidence(answers, factors),
    )
