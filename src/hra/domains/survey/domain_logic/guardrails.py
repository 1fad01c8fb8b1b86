"""Guardrails: input validation, exit conditions and range correction.

Each check is a pure function returning a result object; none of them raise
for bad data. Thresholds come from ``GuardrailConfig``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from hra.domains.survey.domain_logic.survey_models import (
    CORE_FIELDS,
    DEFAULT_GUARDRAIL_CONFIG,
    Correction,
    GuardrailConfig,
    GuardrailResult,
    GuardrailWarning,
    ParseResult,
    RangeValidation,
)
from hra.domains.survey.domain_logic.survey_parser import parse_float_prefix, parse_int_prefix

# Range correction accepts a narrower synonym set than the parser.
_RANGE_TRUE_WORDS = frozenset({"yes", "true", "1", "y"})
_RANGE_FALSE_WORDS = frozenset({"no", "false", "0", "n"})

_OCR_ARTIFACT_PATTERNS = [
    re.compile(r"[^\x00-\x7F]{5,}"),   # run of non-ASCII characters
    re.compile(r"(.)\1{5,}"),          # same character six or more times
]

SURVEY_KEYWORDS = ["age", "smoker", "smoking", "exercise", "diet", "sleep", "stress"]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ---------------------------------------------------------------------------
# Raw input shape
# ---------------------------------------------------------------------------

def validate_input(raw: Any) -> GuardrailResult:
    """Reject null, empty, array-shaped and malformed-JSON input."""
    if raw is None:
        return GuardrailResult.fail("invalid_input", "Input is null or undefined")

    if isinstance(raw, str):
        trimmed = raw.strip()
        if not trimmed:
            return GuardrailResult.fail("empty_input", "Input is empty")
        if trimmed.startswith("{"):
            try:
                json.loads(trimmed)
            except ValueError as exc:
                return GuardrailResult.fail("invalid_json", f"Invalid JSON format: {exc}")

    if isinstance(raw, Mapping) and not raw:
        return GuardrailResult.fail("empty_input", "Input object is empty")

    if isinstance(raw, (list, tuple)):
        return GuardrailResult.fail(
            "invalid_input", "Input cannot be an array. Expected object or string."
        )

    return GuardrailResult.ok()


# ---------------------------------------------------------------------------
# Completeness / confidence
# ---------------------------------------------------------------------------

def check_profile_completeness(
    parse_result: ParseResult, config: GuardrailConfig = DEFAULT_GUARDRAIL_CONFIG
) -> GuardrailResult:
    """Decide whether a parsed profile is complete enough to analyze."""
    if parse_result.error:
        return GuardrailResult.fail("parse_error", parse_result.error)

    if parse_result.confidence < config.min_confidence:
        return GuardrailResult.fail(
            "low_confidence",
            f"Confidence too low ({parse_result.confidence * 100:.0f}%). "
            "Cannot reliably process input.",
        )

    missing_percentage = len(parse_result.missing_fields) / len(CORE_FIELDS)
    if missing_percentage > config.max_missing_percentage:
        return GuardrailResult.fail(
            "incomplete_profile",
            f">{round(config.max_missing_percentage * 100)}% fields missing",
            missing_fields=list(parse_result.missing_fields),
        )

    answered = [k for k, v in parse_result.answers.items() if v is not None]
    if not answered:
        return GuardrailResult.fail("no_data", "No valid survey data found")

    return GuardrailResult.ok(generate_warnings(parse_result, config))


def generate_warnings(
    parse_result: ParseResult, config: GuardrailConfig = DEFAULT_GUARDRAIL_CONFIG
) -> list[GuardrailWarning]:
    """Advisory warnings for a profile that passed the completeness gate."""
    warnings: list[GuardrailWarning] = []
    missing = parse_result.missing_fields
    answers = parse_result.answers

    if missing:
        warnings.append(GuardrailWarning(
            type="missing_fields",
            message=(
                f"Some fields are missing: {', '.join(missing)}. "
                "Results may be less accurate."
            ),
            fields=list(missing),
        ))

    if parse_result.confidence < config.warning_confidence:
        warnings.append(GuardrailWarning(
            type="low_confidence",
            message="Some answers could not be parsed with high confidence.",
            confidence=parse_result.confidence,
        ))

    age = answers.get("age")
    if _is_number(age) and not config.typical_age_min <= age <= config.typical_age_max:
        warnings.append(GuardrailWarning(
            type="unusual_value",
            message=(
                f"Age value ({_fmt(age)}) is outside typical range "
                f"({config.typical_age_min}-{config.typical_age_max})."
            ),
            field="age",
        ))

    bmi = answers.get("bmi")
    if _is_number(bmi) and not config.typical_bmi_min <= bmi <= config.typical_bmi_max:
        warnings.append(GuardrailWarning(
            type="unusual_value",
            message=(
                f"BMI value ({_fmt(bmi)}) is outside typical range "
                f"({_fmt(config.typical_bmi_min)}-{_fmt(config.typical_bmi_max)})."
            ),
            field="bmi",
        ))

    return warnings


# ---------------------------------------------------------------------------
# Range correction
# ---------------------------------------------------------------------------

def _clamp_field(
    answers: dict[str, Any],
    field_name: str,
    lo: float,
    hi: float,
    corrections: list[Correction],
) -> None:
    value = answers[field_name]
    if value < lo:
        corrections.append(Correction(field_name, "clamped_to_min", value))
        answers[field_name] = lo
    elif value > hi:
        corrections.append(Correction(field_name, "clamped_to_max", value))
        answers[field_name] = hi


def validate_answer_ranges(
    answers: Mapping[str, Any], config: GuardrailConfig = DEFAULT_GUARDRAIL_CONFIG
) -> RangeValidation:
    """Return a corrected copy of ``answers`` plus a record of every change.

    Never fails. ``is_valid`` is True only when nothing had to be corrected.
    """
    corrected = dict(answers)
    corrections: list[Correction] = []

    if corrected.get("age") is not None:
        if not _is_number(corrected["age"]):
            corrected["age"] = parse_int_prefix(corrected["age"]) or None
            if corrected["age"] is not None:
                corrections.append(Correction("age", "type_conversion", answers["age"]))
        if corrected["age"] is not None:
            _clamp_field(corrected, "age", config.age_min, config.age_max, corrections)

    if corrected.get("bmi") is not None:
        if not _is_number(corrected["bmi"]):
            corrected["bmi"] = parse_float_prefix(corrected["bmi"]) or None
            if corrected["bmi"] is not None:
                corrections.append(Correction("bmi", "type_conversion", answers["bmi"]))
        if corrected["bmi"] is not None:
            _clamp_field(corrected, "bmi", config.bmi_min, config.bmi_max, corrections)

    if _is_number(corrected.get("sleep")):
        _clamp_field(corrected, "sleep", config.sleep_min, config.sleep_max, corrections)

    smoker = corrected.get("smoker")
    if isinstance(smoker, str):
        lower = smoker.lower()
        if lower in _RANGE_TRUE_WORDS:
            corrected["smoker"] = True
            corrections.append(Correction("smoker", "normalized_to_boolean", smoker))
        elif lower in _RANGE_FALSE_WORDS:
            corrected["smoker"] = False
            corrections.append(Correction("smoker", "normalized_to_boolean", smoker))

    return RangeValidation(
        is_valid=not corrections,
        corrected_answers=corrected,
        corrections=corrections,
    )


# ---------------------------------------------------------------------------
# OCR text quality
# ---------------------------------------------------------------------------

def validate_ocr_text(
    text: Any, config: GuardrailConfig = DEFAULT_GUARDRAIL_CONFIG
) -> GuardrailResult:
    """Check that OCR output is long enough and looks like a survey."""
    if not text or not isinstance(text, str):
        return GuardrailResult.fail("invalid_ocr", "OCR text is empty or invalid")

    trimmed = text.strip()
    if len(trimmed) < config.min_ocr_length:
        return GuardrailResult.fail(
            "invalid_ocr", "OCR text is too short to contain valid survey data"
        )

    warnings: list[GuardrailWarning] = []
    if any(p.search(trimmed) for p in _OCR_ARTIFACT_PATTERNS):
        warnings.append(GuardrailWarning(
            type="ocr_artifacts",
            message="OCR text may contain recognition artifacts",
        ))

    lower = trimmed.lower()
    found = [kw for kw in SURVEY_KEYWORDS if kw in lower]
    if not found:
        warnings.append(GuardrailWarning(
            type="no_survey_keywords",
            message="OCR text does not contain recognizable survey fields",
        ))

    result = GuardrailResult.ok(warnings)
    result.keywords_found = found
    return result
