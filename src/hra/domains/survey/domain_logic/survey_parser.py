"""Survey parser: raw survey input -> canonical answer mapping.

Accepts a mapping, a JSON string, or OCR-extracted text. Answers keep a
three-valued meaning: a missing key is unknown, a key holding ``None`` was
supplied but could not be parsed, anything else is a known value.

The parser never raises; failures are reported through ``ParseResult.error``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from hra.domains.survey.domain_logic.survey_models import (
    CORE_FIELDS,
    FALSE_WORDS,
    TRUE_WORDS,
    ParseResult,
)

logger = logging.getLogger(__name__)

OCR_CONFIDENCE_PENALTY = 0.1
MISSING_CORE_PENALTY = 0.05
NULL_VALUE_PENALTY = 0.02

_EXERCISE_BUCKETS: list[tuple[str, frozenset[str]]] = [
    ("rarely", frozenset({"never", "none", "rarely", "sedentary", "no"})),
    ("sometimes", frozenset({"sometimes", "occasional", "moderate", "1-2 times", "1-2x", "weekly"})),
    ("regularly", frozenset({"often", "regular", "regularly", "frequent", "3-4 times", "3-4x", "daily"})),
]

_DIET_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("high sugar", ("high sugar", "junk", "fast food", "unhealthy")),
    ("balanced", ("balanced", "normal", "mixed")),
    ("healthy", ("healthy", "vegetable", "fruit", "whole")),
]

_ALCOHOL_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("heavy", ("heavy", "frequent")),
    ("moderate", ("moderate", "social")),
    ("rarely", ("rarely", "never", "none")),
]

_LEADING_INT = re.compile(r"^\s*([+-]?)(\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
# Digit runs longer than this saturate to the largest value of that width
MAX_INT_DIGITS = 32

_TOKEN_SPLIT = re.compile(r"[:\s]+")

_OCR_AGE = re.compile(r"age[:\s]+(\d+)")
_OCR_SLEEP = re.compile(r"sleep[:\s]+(\d+)")
_OCR_BMI = re.compile(r"bmi[:\s]+([\d.]+)")


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def parse_int_prefix(value: Any) -> int | None:
    """Leading-integer parse (``"42 years"`` -> 42). Returns None when nothing parses."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return _digits_to_int(match.group(2), negative=match.group(1) == "-")


def parse_float_prefix(value: Any) -> float | None:
    """Leading-float parse (``"27.5kg/m2"`` -> 27.5). Returns None when nothing parses."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = _LEADING_FLOAT.match(str(value))
        if not match:
            return None
        number = float(match.group(1))
    return number if math.isfinite(number) else None


def _digits_to_int(digits: str, negative: bool = False) -> int:
    digits = digits.lstrip("0") or "0"
    if len(digits) > MAX_INT_DIGITS:
        digits = "9" * MAX_INT_DIGITS
    number = int(digits)
    return -number if negative else number


def _last_token(line: str) -> str:
    return _TOKEN_SPLIT.split(line)[-1]


# ---------------------------------------------------------------------------
# Field normalizers
# ---------------------------------------------------------------------------

def normalize_boolean(value: Any) -> bool | None:
    """Map yes/no style answers to a boolean; unknown shapes give None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.lower().strip()
        if lower in TRUE_WORDS:
            return True
        if lower in FALSE_WORDS:
            return False
    return None


def normalize_exercise(value: Any) -> str | None:
    if not value:
        return None
    lower = str(value).lower().strip()
    for bucket, synonyms in _EXERCISE_BUCKETS:
        if lower in synonyms:
            return bucket
    return lower


def normalize_diet(value: Any) -> str | None:
    if not value:
        return None
    lower = str(value).lower().strip()
    for bucket, keywords in _DIET_KEYWORDS:
        if any(k in lower for k in keywords):
            return bucket
    return lower


def normalize_alcohol(value: Any) -> str | None:
    if value is None:
        return None
    lower = str(value).lower()
    for bucket, keywords in _ALCOHOL_KEYWORDS:
        if any(k in lower for k in keywords):
            return bucket
    return lower


# ---------------------------------------------------------------------------
# Input-shape parsers
# ---------------------------------------------------------------------------

def parse_structured_input(raw: Mapping[str, Any] | str) -> dict[str, Any]:
    """Normalize a structured survey (mapping or JSON object string) field by field.

    Raises:
        ValueError: the string is not valid JSON or does not decode to an object.
        TypeError: the input is neither a mapping nor a string.
    """
    data = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a survey object, got {type(data).__name__}")

    answers: dict[str, Any] = {}

    if "age" in data:
        answers["age"] = parse_int_prefix(data["age"]) or None
    if "smoker" in data:
        answers["smoker"] = normalize_boolean(data["smoker"])
    if "exercise" in data:
        answers["exercise"] = normalize_exercise(data["exercise"])
    if "diet" in data:
        answers["diet"] = normalize_diet(data["diet"])
    if "alcohol" in data:
        answers["alcohol"] = normalize_alcohol(data["alcohol"])
    if "sleep" in data:
        # Unparseable sleep keeps its raw value ("poor", "irregular", ...)
        answers["sleep"] = parse_int_prefix(data["sleep"]) or data["sleep"]
    if "stress" in data:
        stress = data["stress"]
        answers["stress"] = None if stress is None else str(stress).lower()
    if "bmi" in data:
        answers["bmi"] = parse_float_prefix(data["bmi"]) or None

    return answers


def parse_ocr_text(text: str) -> dict[str, Any]:
    """Scan OCR text line by line for survey fields.

    Lines are independent; a later line overwrites an earlier value for the
    same field.
    """
    if not isinstance(text, str):
        raise TypeError(f"OCR input must be text, got {type(text).__name__}")

    answers: dict[str, Any] = {}
    lines = [line.strip() for line in text.split("\n")]

    for line in (ln for ln in lines if ln):
        lower = line.lower()

        age_match = _OCR_AGE.search(lower)
        if age_match:
            answers["age"] = _digits_to_int(age_match.group(1))

        if "smoker" in lower or "smoking" in lower:
            answers["smoker"] = normalize_boolean(_last_token(line))

        if "exercise" in lower or "activity" in lower or "workout" in lower:
            answers["exercise"] = normalize_exercise(_last_token(line))

        if "diet" in lower or "eating" in lower or "food" in lower:
            parts = _TOKEN_SPLIT.split(line)
            answers["diet"] = normalize_diet(" ".join(parts[1:])) or normalize_diet(parts[-1])

        if "alcohol" in lower or "drinking" in lower:
            answers["alcohol"] = _last_token(line).lower()

        sleep_match = _OCR_SLEEP.search(lower)
        if sleep_match:
            answers["sleep"] = _digits_to_int(sleep_match.group(1))

        if "stress" in lower:
            answers["stress"] = _last_token(line).lower()

        bmi_match = _OCR_BMI.search(lower)
        if bmi_match:
            answers["bmi"] = parse_float_prefix(bmi_match.group(1))

    return answers


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def get_missing_fields(answers: Mapping[str, Any]) -> list[str]:
    """Core fields that are absent or unparseable, in vocabulary order."""
    return [f for f in CORE_FIELDS if answers.get(f) is None]


def calculate_confidence(answers: Mapping[str, Any], is_ocr: bool = False) -> float:
    confidence = 1.0
    if is_ocr:
        confidence -= OCR_CONFIDENCE_PENALTY

    present_core = sum(1 for f in CORE_FIELDS if answers.get(f) is not None)
    confidence -= (len(CORE_FIELDS) - present_core) * MISSING_CORE_PENALTY

    null_count = sum(1 for v in answers.values() if v is None)
    confidence -= null_count * NULL_VALUE_PENALTY

    return max(0.0, min(1.0, round(confidence, 2)))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def parse_survey(raw: Any, is_ocr: bool = False) -> ParseResult:
    """Parse raw survey input into a ``ParseResult``.

    OCR input is line-scanned. Strings are decoded as JSON first and fall
    back to the line scan. Mappings are normalized directly.
    """
    try:
        if is_ocr:
            answers = parse_ocr_text(raw)
        elif isinstance(raw, str):
            try:
                answers = parse_structured_input(raw)
            except (ValueError, TypeError):
                answers = parse_ocr_text(raw)
        else:
            answers = parse_structured_input(raw)
    except Exception as exc:
        logger.warning("Survey parse failed: %s", exc)
        return ParseResult(
            answers={},
            missing_fields=list(CORE_FIELDS),
            confidence=0.0,
            error=f"Failed to parse input: {exc}",
        )

    return ParseResult(
        answers=answers,
        missing_fields=get_missing_fields(answers),
        confidence=calculate_confidence(answers, is_ocr),
    )
