"""Unit tests for the survey parser."""

from __future__ import annotations

import json

import pytest

from hra.domains.survey.domain_logic.survey_parser import (
    MAX_INT_DIGITS,
    calculate_confidence,
    get_missing_fields,
    normalize_alcohol,
    normalize_boolean,
    normalize_diet,
    normalize_exercise,
    parse_float_prefix,
    parse_int_prefix,
    parse_ocr_text,
    parse_structured_input,
    parse_survey,
)


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

class TestPrefixParsing:
    @pytest.mark.parametrize("value, expected", [
        (42, 42),
        ("42", 42),
        ("42 years", 42),
        ("  7h", 7),
        (41.9, 41),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
    ])
    def test_parse_int_prefix(self, value, expected):
        assert parse_int_prefix(value) == expected

    @pytest.mark.parametrize("value, expected", [
        (27.5, 27.5),
        ("27.5", 27.5),
        ("31.2kg/m2", 31.2),
        (".5", 0.5),
        ("n/a", None),
        (False, None),
        (float("nan"), None),
    ])
    def test_parse_float_prefix(self, value, expected):
        assert parse_float_prefix(value) == expected

    def test_very_long_digit_run_saturates(self):
        assert parse_int_prefix("9" * 5000) == int("9" * MAX_INT_DIGITS)
        assert parse_int_prefix("-" + "1" * 5000) == -int("9" * MAX_INT_DIGITS)
        assert parse_int_prefix("0" * 5000 + "42") == 42

    def test_huge_int_is_not_a_float(self):
        assert parse_float_prefix(10 ** 400) is None


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------

class TestNormalizers:
    @pytest.mark.parametrize("value", [True, "yes", "Y", "true", "1", " yeah ", "yep"])
    def test_boolean_true(self, value):
        assert normalize_boolean(value) is True

    @pytest.mark.parametrize("value", [False, "no", "N", "false", "0", "nope", "never"])
    def test_boolean_false(self, value):
        assert normalize_boolean(value) is False

    @pytest.mark.parametrize("value", ["maybe", 1, None, ""])
    def test_boolean_unknown(self, value):
        assert normalize_boolean(value) is None

    @pytest.mark.parametrize("value, expected", [
        ("never", "rarely"),
        ("Sedentary", "rarely"),
        ("weekly", "sometimes"),
        ("1-2x", "sometimes"),
        ("daily", "regularly"),
        ("Often", "regularly"),
        ("swimming", "swimming"),
        ("", None),
        (None, None),
    ])
    def test_exercise(self, value, expected):
        assert normalize_exercise(value) == expected

    @pytest.mark.parametrize("value, expected", [
        ("Lots of junk food", "high sugar"),
        ("mixed", "balanced"),
        ("vegetables and fruit", "healthy"),
        ("keto", "keto"),
        ("", None),
    ])
    def test_diet(self, value, expected):
        assert normalize_diet(value) == expected

    @pytest.mark.parametrize("value, expected", [
        ("Heavy drinker", "heavy"),
        ("social", "moderate"),
        ("none", "rarely"),
        ("Weekends", "weekends"),
        (None, None),
    ])
    def test_alcohol(self, value, expected):
        assert normalize_alcohol(value) == expected


# ---------------------------------------------------------------------------
# Structured input
# ---------------------------------------------------------------------------

class TestStructuredInput:
    def test_normalizes_every_field(self):
        answers = parse_structured_input({
            "age": "45",
            "smoker": "yes",
            "exercise": "never",
            "diet": "fast food",
            "alcohol": "Social",
            "sleep": "6 hours",
            "stress": "HIGH",
            "bmi": "28.4",
        })
        assert answers == {
            "age": 45,
            "smoker": True,
            "exercise": "rarely",
            "diet": "high sugar",
            "alcohol": "moderate",
            "sleep": 6,
            "stress": "high",
            "bmi": 28.4,
        }

    def test_absent_fields_stay_absent(self):
        answers = parse_structured_input({"age": 30})
        assert answers == {"age": 30}
        assert "smoker" not in answers

    def test_unparseable_values_become_none(self):
        answers = parse_structured_input({"age": "old", "smoker": "sometimes", "bmi": "?"})
        assert answers == {"age": None, "smoker": None, "bmi": None}

    def test_zero_age_is_unparseable(self):
        assert parse_structured_input({"age": 0})["age"] is None

    def test_unparseable_sleep_keeps_raw_value(self):
        assert parse_structured_input({"sleep": "poor"})["sleep"] == "poor"

    def test_json_string(self):
        answers = parse_structured_input(json.dumps({"age": 52, "smoker": False}))
        assert answers == {"age": 52, "smoker": False}

    def test_non_object_json_rejected(self):
        with pytest.raises(TypeError):
            parse_structured_input("[1, 2, 3]")


# ---------------------------------------------------------------------------
# OCR text
# ---------------------------------------------------------------------------

class TestOcrText:
    def test_basic_scan(self, ocr_text):
        answers = parse_ocr_text(ocr_text)
        assert answers == {
            "age": 42,
            "smoker": True,
            "exercise": "rarely",
            "diet": "high sugar",
        }

    def test_mixed_case_values(self):
        answers = parse_ocr_text("Age: 42\nSmoker: Yes\nExercise: Rarely\nDiet: High sugar")
        assert answers == {
            "age": 42,
            "smoker": True,
            "exercise": "rarely",
            "diet": "high sugar",
        }

    def test_numeric_fields(self):
        answers = parse_ocr_text("Sleep: 5 hours\nBMI: 31.5\nStress: High\nAlcohol: Heavy")
        assert answers["sleep"] == 5
        assert answers["bmi"] == 31.5
        assert answers["stress"] == "high"
        assert answers["alcohol"] == "heavy"

    def test_very_long_age_and_sleep_saturate(self):
        answers = parse_ocr_text(f"Age: {'9' * 5000}\nSleep: {'8' * 5000}")
        assert answers["age"] == int("9" * MAX_INT_DIGITS)
        assert answers["sleep"] == int("9" * MAX_INT_DIGITS)

    def test_later_line_wins(self):
        answers = parse_ocr_text("Age: 30\nAge: 50")
        assert answers["age"] == 50

    def test_blank_lines_ignored(self):
        answers = parse_ocr_text("\n\n  Age: 33  \n\n")
        assert answers == {"age": 33}

    def test_non_text_rejected(self):
        with pytest.raises(TypeError):
            parse_ocr_text({"age": 30})


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class TestConfidence:
    def test_complete_structured(self, high_risk_survey):
        assert calculate_confidence(high_risk_survey) == 1.0

    def test_ocr_penalty(self, high_risk_survey):
        assert calculate_confidence(high_risk_survey, is_ocr=True) == 0.9

    def test_missing_and_null_penalties(self):
        # three core fields missing or None (-0.15), one explicit None (-0.02)
        answers = {"age": 30, "smoker": None, "bmi": 22.0}
        assert calculate_confidence(answers) == 0.83

    def test_clamped_at_zero(self):
        answers = {f"x{i}": None for i in range(60)}
        assert calculate_confidence(answers, is_ocr=True) == 0.0

    def test_missing_fields_in_vocabulary_order(self):
        assert get_missing_fields({"diet": "healthy", "age": None}) == ["age", "smoker", "exercise"]


# ---------------------------------------------------------------------------
# parse_survey
# ---------------------------------------------------------------------------

class TestParseSurvey:
    def test_structured_mapping(self, high_risk_survey):
        result = parse_survey(high_risk_survey)
        assert result.error is None
        assert result.missing_fields == []
        assert result.confidence == 1.0

    def test_ocr_flag(self, ocr_text):
        result = parse_survey(ocr_text, is_ocr=True)
        assert result.answers["age"] == 42
        assert result.confidence == 0.9

    def test_plain_text_falls_back_to_line_scan(self):
        result = parse_survey("Age: 61\nSmoker: no")
        assert result.answers == {"age": 61, "smoker": False}
        assert result.missing_fields == ["exercise", "diet"]
        # not flagged as OCR, so no OCR penalty
        assert result.confidence == 0.9

    def test_failure_reports_error_instead_of_raising(self):
        result = parse_survey(12345)
        assert result.error is not None
        assert result.error.startswith("Failed to parse input:")
        assert result.confidence == 0.0
        assert result.missing_fields == ["age", "smoker", "exercise", "diet"]
        assert result.answers == {}

    def test_ocr_flag_with_mapping_is_parse_error(self, high_risk_survey):
        result = parse_survey(high_risk_survey, is_ocr=True)
        assert result.error is not None

    def test_to_dict(self, high_risk_survey):
        data = parse_survey(high_risk_survey).to_dict()
        assert set(data) == {"answers", "missing_fields", "confidence"}
