"""Survey domain models, vocabularies and guardrail thresholds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Field vocabulary
# ---------------------------------------------------------------------------

EXPECTED_FIELDS = ["age", "smoker", "exercise", "diet", "alcohol", "sleep", "stress", "bmi"]

# Used to gate profile completeness
CORE_FIELDS = ["age", "smoker", "exercise", "diet"]

FIELD_DESCRIPTIONS: dict[str, dict[str, Any]] = {
    "age": {"type": "number", "description": "Age in years", "range": "0-150"},
    "smoker": {"type": "boolean", "description": "Whether the person smokes"},
    "exercise": {
        "type": "string",
        "description": "Exercise frequency",
        "values": ["rarely", "sometimes", "regularly"],
    },
    "diet": {
        "type": "string",
        "description": "Diet quality",
        "values": ["high sugar", "balanced", "healthy"],
    },
    "alcohol": {
        "type": "string",
        "description": "Alcohol consumption",
        "values": ["rarely", "moderate", "heavy"],
    },
    "sleep": {"type": "number", "description": "Sleep hours per night", "range": "0-24"},
    "stress": {
        "type": "string",
        "description": "Stress level",
        "values": ["low", "moderate", "high"],
    },
    "bmi": {"type": "number", "description": "Body Mass Index", "range": "10-100"},
}

TRUE_WORDS = frozenset({"yes", "true", "y", "1", "yeah", "yep"})
FALSE_WORDS = frozenset({"no", "false", "n", "0", "nope", "never"})

RISK_LEVELS = ["low", "moderate", "high", "very high"]


# ---------------------------------------------------------------------------
# Guardrail thresholds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GuardrailConfig:
    """Tunable guardrail thresholds.

    Blocking thresholds (``min_confidence``, ``max_missing_percentage``) gate
    the pipeline. Hard ranges drive auto-correction. Typical ranges only
    produce advisory warnings.
    """

    min_confidence: float = 0.3
    max_missing_percentage: float = 0.5
    warning_confidence: float = 0.8

    age_min: int = 0
    age_max: int = 150
    bmi_min: float = 10
    bmi_max: float = 100
    sleep_min: float = 0
    sleep_max: float = 24

    typical_age_min: int = 18
    typical_age_max: int = 100
    typical_bmi_min: float = 15
    typical_bmi_max: float = 50

    min_ocr_length: int = 10


DEFAULT_GUARDRAIL_CONFIG = GuardrailConfig()


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Correction:
    """A non-fatal adjustment applied to an out-of-range or mistyped answer."""

    field: str
    action: str          # type_conversion | clamped_to_min | clamped_to_max | normalized_to_boolean
    original: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "action": self.action, "original": self.original}


@dataclass
class ParseResult:
    """Canonical answers produced by the survey parser."""

    answers: dict[str, Any]
    missing_fields: list[str]
    confidence: float
    error: str | None = None
    corrections: list[Correction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "answers": dict(self.answers),
            "missing_fields": list(self.missing_fields),
            "confidence": self.confidence,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.corrections:
            data["corrections"] = [c.to_dict() for c in self.corrections]
        return data


@dataclass
class GuardrailWarning:
    """Advisory, non-blocking guardrail finding."""

    type: str
    message: str
    fields: list[str] | None = None
    field: str | None = None
    confidence: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.fields is not None:
            data["fields"] = list(self.fields)
        if self.field is not None:
            data["field"] = self.field
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data


@dataclass
class GuardrailResult:
    """Outcome of a guardrail check. Failures carry a machine-readable status."""

    is_valid: bool
    status: str = "ok"
    reason: str = ""
    warnings: list[GuardrailWarning] = field(default_factory=list)
    missing_fields: list[str] | None = None
    keywords_found: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, warnings: list[GuardrailWarning] | None = None) -> GuardrailResult:
        return cls(is_valid=True, warnings=warnings or [])

    @classmethod
    def fail(
        cls, status: str, reason: str, *, missing_fields: list[str] | None = None
    ) -> GuardrailResult:
        return cls(is_valid=False, status=status, reason=reason, missing_fields=missing_fields)


@dataclass
class RangeValidation:
    """Corrected answers; ``is_valid`` means no correction was needed."""

    is_valid: bool
    corrected_answers: dict[str, Any]
    corrections: list[Correction] = field(default_factory=list)


@dataclass
class FactorDetail:
    id: str
    label: str
    weight: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "weight": self.weight}


@dataclass
class FactorResult:
    """Qualitative risk factors, most significant first."""

    factors: list[str]
    factor_details: list[FactorDetail]
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "factors": list(self.factors),
            "factor_details": [d.to_dict() for d in self.factor_details],
            "confidence": self.confidence,
        }


@dataclass
class RiskResult:
    risk_level: str
    score: int
    rationale: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_level": self.risk_level,
            "score": self.score,
            "rationale": list(self.rationale),
        }


@dataclass(frozen=True)
class Recommendation:
    """Static, non-diagnostic advice entry."""

    primary: str
    details: str
    priority: int        # lower = more urgent
    icon: str
    factor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "primary": self.primary,
            "details": self.details,
            "priority": self.priority,
            "icon": self.icon,
        }
        if self.factor is not None:
            data["factor"] = self.factor
        return data


@dataclass
class RecommendationSet:
    recommendations: list[str]
    detailed_recommendations: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendations": list(self.recommendations),
            "detailed_recommendations": [r.to_dict() for r in self.detailed_recommendations],
        }
