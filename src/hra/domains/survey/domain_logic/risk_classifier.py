"""Risk classification: factors + raw answers -> score, level and rationale.

Scores are configured independently of the extraction weights. All
arithmetic is deterministic.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from hra.domains.survey.domain_logic.survey_models import RiskResult

FACTOR_SCORES: dict[str, int] = {
    "smoking": 25,
    "poor diet": 18,
    "low exercise": 15,
    "excessive alcohol": 20,
    "poor sleep": 10,
    "high stress": 12,
    "obesity": 20,
    "overweight": 10,
    "advanced age": 8,
    "middle age": 4,
}

MAX_SCORE = 100

# (upper bound exclusive, base risk); ages past the last bound get AGE_BASE_MAX
AGE_BASE_RISK = [(30, 0), (40, 5), (50, 10), (60, 15), (70, 20)]
AGE_BASE_MAX = 25

# (upper bound exclusive, level)
RISK_THRESHOLDS = [(25, "low"), (50, "moderate"), (75, "high")]
TOP_RISK_LEVEL = "very high"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fmt(value: Any) -> str:
    """Render numbers the way a person would write them (7.0 -> '7')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def get_age_base_risk(age: Any) -> int:
    """Base risk from raw age, independent of the age factors."""
    if not _is_number(age):
        return 0
    for bound, risk in AGE_BASE_RISK:
        if age < bound:
            return risk
    return AGE_BASE_MAX


def get_risk_level(score: float) -> str:
    for bound, level in RISK_THRESHOLDS:
        if score < bound:
            return level
    return TOP_RISK_LEVEL


def generate_rationale(factors: Sequence[str], answers: Mapping[str, Any]) -> list[str]:
    """One human-readable reason per factor; middle age is scored but not narrated."""
    rationale: list[str] = []
    diet = answers.get("diet")
    sleep = answers.get("sleep")
    bmi = answers.get("bmi")

    for factor in factors:
        if factor == "smoking":
            rationale.append("smoking")
        elif factor == "poor diet":
            rationale.append(f"{diet} diet" if diet else "poor dietary habits")
        elif factor == "low exercise":
            rationale.append(
                "low physical activity" if answers.get("exercise") == "rarely"
                else "sedentary lifestyle"
            )
        elif factor == "excessive alcohol":
            rationale.append("high alcohol consumption")
        elif factor == "poor sleep":
            if _is_number(sleep):
                rationale.append(f"inadequate sleep ({_fmt(sleep)} hours)")
            else:
                rationale.append("poor sleep quality")
        elif factor == "high stress":
            rationale.append("chronic stress")
        elif factor == "obesity":
            rationale.append(f"obesity (BMI: {_fmt(bmi)})" if bmi else "obesity")
        elif factor == "overweight":
            rationale.append(f"overweight (BMI: {_fmt(bmi)})" if bmi else "overweight")
        elif factor == "advanced age":
            rationale.append(f"age factor ({_fmt(answers.get('age'))} years)")
        elif factor == "middle age":
            continue
        else:
            rationale.append(factor)

    return rationale


def classify_risk(
    factors: Sequence[str], answers: Mapping[str, Any] | None = None
) -> RiskResult:
    """Score a factor list and map it to a risk level."""
    answers = answers or {}

    score: float = get_age_base_risk(answers.get("age"))
    for factor in factors:
        score += FACTOR_SCORES.get(factor, 0)
    score = min(MAX_SCORE, score)

    return RiskResult(
        risk_level=get_risk_level(score),
        score=int(round(score)),
        rationale=generate_rationale(factors, answers),
    )
