"""Unit tests for the analysis pipeline orchestrator."""

from __future__ import annotations

import logging

import pytest

from hra.core.schema.models import PropertySchema, Schema
from hra.core.schema.registry import SchemaRegistry
from hra.core.schema.validator import validate_schema
from hra.domains.survey.domain_logic import pipeline as pipeline_module
from hra.domains.survey.domain_logic.pipeline import (
    GENERIC_PIPELINE_ERROR,
    PipelineState,
    SurveyInputError,
    run_analysis_pipeline,
    run_legacy_analysis,
    run_pipeline_step,
)
from hra.domains.survey.domain_logic.survey_models import GuardrailConfig
from hra.domains.survey.domain_logic.survey_parser import MAX_INT_DIGITS

STEP_NAMES = ["input_validation", "parse", "factors", "risk", "recommendations"]


# ---------------------------------------------------------------------------
# Successful runs
# ---------------------------------------------------------------------------

class TestSuccessfulRun:
    def test_high_risk_scenario(self, high_risk_survey):
        result = run_analysis_pipeline(high_risk_survey)

        assert result.success
        assert result.state is PipelineState.DONE
        assert result.error is None
        assert [s.step for s in result.steps] == STEP_NAMES
        assert all(s.success for s in result.steps)

        data = result.data
        assert data["status"] == "ok"
        assert data["timestamp"]
        assert data["factors"] == ["smoking", "poor diet", "low exercise", "middle age"]
        assert data["score"] == 72
        assert data["risk_level"] == "high"
        assert data["rationale"] == ["smoking", "high sugar diet", "low physical activity"]
        assert len(data["recommendations"]) == 5
        assert data["recommendations"][0] == "Quit smoking"
        assert data["parse_confidence"] == 1.0
        assert data["factor_confidence"] == 1.0
        assert data["missing_fields"] == []
        assert data["corrections"] == []
        assert data["warnings"] == []
        assert data["pipeline_steps"] == 5
        assert [d["id"] for d in data["factor_details"]] == [
            "smoking", "poor_diet", "low_exercise", "middle_age",
        ]

    def test_very_high_risk_scenario(self):
        data = run_analysis_pipeline({
            "age": 42,
            "smoker": True,
            "exercise": "rarely",
            "diet": "high sugar",
            "stress": "high",
            "sleep": 5,
        }).data
        assert data["factors"] == [
            "smoking", "poor diet", "low exercise", "high stress", "poor sleep", "middle age",
        ]
        # age base 10, factor scores 25+18+15+12+10+4
        assert data["score"] == 94
        assert data["risk_level"] == "very high"
        assert data["rationale"] == [
            "smoking",
            "high sugar diet",
            "low physical activity",
            "chronic stress",
            "inadequate sleep (5 hours)",
        ]
        assert data["recommendations"] == [
            "Quit smoking",
            "Improve your diet",
            "Increase physical activity",
            "Manage stress levels",
            "Improve sleep habits",
        ]

    def test_low_risk_scenario(self, low_risk_survey):
        data = run_analysis_pipeline(low_risk_survey).data
        assert data["factors"] == []
        assert data["score"] == 0
        assert data["risk_level"] == "low"
        assert data["recommendations"] == []

    def test_ocr_scenario(self, ocr_text, high_risk_survey):
        ocr = run_analysis_pipeline(ocr_text, is_ocr=True).data
        structured = run_analysis_pipeline(high_risk_survey).data
        assert ocr["parse_confidence"] == 0.9
        assert structured["parse_confidence"] == 1.0
        assert ocr["factors"] == structured["factors"]
        assert ocr["score"] == structured["score"] == 72

    def test_json_string_input(self):
        result = run_analysis_pipeline(
            '{"age": 30, "smoker": "no", "exercise": "daily", "diet": "balanced"}'
        )
        assert result.success
        assert result.data["answers"]["smoker"] is False

    def test_age_clamped_before_scoring(self):
        data = run_analysis_pipeline(
            {"age": 200, "smoker": False, "exercise": "regularly", "diet": "healthy"}
        ).data
        assert data["answers"]["age"] == 150
        assert data["corrections"] == [
            {"field": "age", "action": "clamped_to_max", "original": 200},
        ]
        assert data["factors"] == ["advanced age"]
        assert data["score"] == 33
        assert data["rationale"] == ["age factor (150 years)"]
        assert [w["type"] for w in data["warnings"]] == ["unusual_value"]

    def test_very_long_age_is_clamped(self):
        data = run_analysis_pipeline(
            {"age": "9" * 5000, "smoker": True, "exercise": "rarely", "diet": "healthy"}
        ).data
        assert data["answers"]["age"] == 150
        assert data["corrections"] == [
            {"field": "age", "action": "clamped_to_max", "original": int("9" * MAX_INT_DIGITS)},
        ]
        assert "unusual_value" in [w["type"] for w in data["warnings"]]

    def test_very_long_ocr_age_is_clamped(self):
        text = "Age: " + "9" * 5000 + "\nSmoker: yes\nExercise: rarely\nDiet: healthy"
        result = run_analysis_pipeline(text, is_ocr=True)
        assert result.success
        assert result.data["answers"]["age"] == 150
        warning_types = [w["type"] for w in result.data["warnings"]]
        assert "ocr_artifacts" in warning_types
        assert "unusual_value" in warning_types

    def test_missing_field_warning_is_reported(self):
        data = run_analysis_pipeline({"age": 30, "smoker": True}).data
        assert data["missing_fields"] == ["exercise", "diet"]
        assert data["warnings"][0]["type"] == "missing_fields"

    def test_result_satisfies_analysis_schema(self, high_risk_survey, schema_registry):
        data = run_analysis_pipeline(high_risk_survey).data
        validation = validate_schema(data, schema_registry.get("analysisResponse"))
        assert validation.is_valid, validation.errors

    def test_deterministic(self, high_risk_survey):
        first = run_analysis_pipeline(high_risk_survey).data
        second = run_analysis_pipeline(high_risk_survey).data
        first.pop("timestamp")
        second.pop("timestamp")
        assert first == second

    def test_input_is_not_mutated(self):
        survey = {"age": 200, "smoker": "yes", "exercise": "never", "diet": "junk"}
        run_analysis_pipeline(survey)
        assert survey == {"age": 200, "smoker": "yes", "exercise": "never", "diet": "junk"}


# ---------------------------------------------------------------------------
# Halting runs
# ---------------------------------------------------------------------------

class TestHaltingRun:
    @pytest.mark.parametrize("raw, status", [
        (None, "invalid_input"),
        ("", "empty_input"),
        ({}, "empty_input"),
        ([1, 2], "invalid_input"),
        ("{broken", "invalid_json"),
    ])
    def test_input_validation_failures(self, raw, status):
        result = run_analysis_pipeline(raw)
        assert not result.success
        assert result.state is PipelineState.FAILED
        assert result.error["status"] == status
        assert result.failed_step == "input_validation"
        assert result.rejected_input
        assert len(result.steps) == 1
        assert result.data is None

    def test_incomplete_profile(self):
        result = run_analysis_pipeline({"age": 30})
        assert result.error["status"] == "incomplete_profile"
        assert result.error["missing_fields"] == ["smoker", "exercise", "diet"]
        assert result.error["partial_parse"] == {"answers": {"age": 30}, "confidence": 0.85}
        assert result.failed_step == "parse"
        assert not result.rejected_input
        assert [s.step for s in result.steps] == ["input_validation", "parse"]

    def test_invalid_ocr(self):
        result = run_analysis_pipeline("Age: 4", is_ocr=True)
        assert result.error["status"] == "invalid_ocr"
        assert result.failed_step == "parse"

    def test_ocr_flag_with_object_is_invalid_ocr(self, high_risk_survey):
        result = run_analysis_pipeline(high_risk_survey, is_ocr=True)
        assert result.error["status"] == "invalid_ocr"

    def test_stop_on_warning(self):
        result = run_analysis_pipeline({"age": 30, "smoker": True}, stop_on_warning=True)
        assert result.error["status"] == "warnings_present"
        assert [w["type"] for w in result.error["warnings"]] == ["missing_fields"]
        assert result.error["partial_parse"]["answers"] == {"age": 30, "smoker": True}

    def test_stop_on_warning_without_warnings_completes(self, high_risk_survey):
        assert run_analysis_pipeline(high_risk_survey, stop_on_warning=True).success

    def test_config_thresholds_apply(self, ocr_text):
        # OCR input tops out at 0.9 confidence
        strict = GuardrailConfig(min_confidence=0.95)
        result = run_analysis_pipeline(ocr_text, is_ocr=True, config=strict)
        assert result.error["status"] == "low_confidence"


class TestPipelineError:
    @pytest.fixture
    def broken_factors(self, monkeypatch):
        def _boom(answers):
            raise RuntimeError("factor table exploded")

        monkeypatch.setattr(pipeline_module, "extract_factors", _boom)

    def test_exception_becomes_pipeline_error(self, broken_factors, high_risk_survey):
        result = run_analysis_pipeline(high_risk_survey)
        assert not result.success
        assert result.state is PipelineState.FAILED
        assert result.error["status"] == "pipeline_error"
        assert result.error["reason"] == "factor table exploded"
        assert result.failed_step == "factors"
        assert not result.steps[-1].success

    def test_details_hidden_when_not_exposed(self, broken_factors, high_risk_survey):
        result = run_analysis_pipeline(high_risk_survey, expose_error_details=False)
        assert result.error["reason"] == GENERIC_PIPELINE_ERROR


class TestSchemaChecks:
    def test_schema_mismatch_is_only_logged(self, high_risk_survey, caplog):
        registry = SchemaRegistry()
        registry.register(Schema(
            id="parse_response",
            name="parseResponse",
            required=["answers", "source"],
            properties={"answers": PropertySchema(type="object"), "source": PropertySchema(type="string")},
        ))
        with caplog.at_level(logging.WARNING, logger="hra.domains.survey.domain_logic.pipeline"):
            result = run_analysis_pipeline(high_risk_survey, schema_registry=registry)

        assert result.success
        assert "parseResponse schema validation warnings" in caplog.text
        assert "Missing required field: source" in caplog.text

    def test_schema_checks_can_be_disabled(self, high_risk_survey, caplog):
        registry = SchemaRegistry()
        with caplog.at_level(logging.WARNING, logger="hra.domains.survey.domain_logic.pipeline"):
            result = run_analysis_pipeline(
                high_risk_survey, validate_schemas=False, schema_registry=registry
            )
        assert result.success
        assert caplog.text == ""


class TestStepResult:
    def test_trace_serializes(self, high_risk_survey):
        steps = [s.to_dict() for s in run_analysis_pipeline(high_risk_survey).steps]
        assert steps[0]["data"] == {"valid": True}
        assert steps[1]["data"]["answers"]["age"] == 45
        assert steps[2]["data"]["factors"][0] == "smoking"
        assert steps[3]["data"]["risk_level"] == "high"
        assert steps[4]["data"]["recommendations"][0] == "Quit smoking"
        assert all(s["error"] is None and s["timestamp"] for s in steps)


# ---------------------------------------------------------------------------
# Legacy path
# ---------------------------------------------------------------------------

class TestLegacyAnalysis:
    def test_matches_traced_pipeline(self, high_risk_survey):
        legacy = run_legacy_analysis(high_risk_survey)
        traced = run_analysis_pipeline(high_risk_survey).data
        assert legacy.success
        for key in ("factors", "score", "risk_level", "rationale", "recommendations"):
            assert legacy.payload[key] == traced[key]
        assert "pipeline_steps" not in legacy.payload

    def test_rejects_bad_input(self):
        result = run_legacy_analysis([])
        assert not result.success
        assert result.rejected_input
        assert result.payload["status"] == "invalid_input"

    def test_rejects_bad_ocr(self):
        result = run_legacy_analysis("Age: 4", is_ocr=True)
        assert result.rejected_input
        assert result.payload["status"] == "invalid_ocr"

    def test_incomplete_is_not_a_rejection(self):
        result = run_legacy_analysis({"age": 30})
        assert not result.success
        assert not result.rejected_input
        assert result.payload["status"] == "incomplete_profile"

    def test_corrections_reported(self):
        result = run_legacy_analysis(
            {"age": 200, "smoker": False, "exercise": "regularly", "diet": "healthy"}
        )
        assert result.payload["answers"]["age"] == 150
        assert result.payload["corrections"][0]["action"] == "clamped_to_max"


# ---------------------------------------------------------------------------
# Single steps
# ---------------------------------------------------------------------------

class TestSingleSteps:
    def test_parse(self, ocr_text):
        step = run_pipeline_step("parse", ocr_text, is_ocr=True)
        assert step.success
        assert step.data.confidence == 0.9

    def test_factors(self, high_risk_survey):
        step = run_pipeline_step("factors", high_risk_survey)
        assert step.data.factors[0] == "smoking"

    def test_factors_requires_mapping(self):
        with pytest.raises(SurveyInputError, match="answers must be an object"):
            run_pipeline_step("factors", ["smoker"])

    def test_risk(self):
        step = run_pipeline_step("risk", {"factors": ["smoking"], "answers": {"age": 45}})
        assert step.data.score == 35
        assert step.data.risk_level == "moderate"

    def test_risk_accepts_rule_ids(self):
        by_id = run_pipeline_step("risk", {"factors": ["smoking", "low_exercise"]}).data
        by_label = run_pipeline_step("risk", {"factors": ["smoking", "low exercise"]}).data
        assert by_id.score == by_label.score == 40
        assert by_id.risk_level == "moderate"
        assert by_id.rationale == by_label.rationale == ["smoking", "sedentary lifestyle"]

    def test_recommendations_accept_rule_ids(self):
        step = run_pipeline_step("recommendations", {"factors": ["poor_sleep"]})
        assert step.data.recommendations == ["Improve sleep habits"]

    def test_risk_answers_optional(self):
        assert run_pipeline_step("risk", {"factors": ["smoking"]}).data.score == 25

    def test_risk_requires_factor_list(self):
        with pytest.raises(SurveyInputError, match="factors must be an array"):
            run_pipeline_step("risk", {"factors": "smoking"})

    def test_recommendations_default_low(self):
        step = run_pipeline_step("recommendations", {"factors": ["poor sleep"]})
        assert step.data.recommendations == ["Improve sleep habits"]

    def test_recommendations_camel_and_snake_case(self):
        camel = run_pipeline_step("recommendations", {"factors": [], "riskLevel": "high"})
        snake = run_pipeline_step("recommendations", {"factors": [], "risk_level": "high"})
        assert camel.data.recommendations == snake.data.recommendations == [
            "Stay hydrated", "Regular health checkups",
        ]

    def test_unknown_step(self):
        step = run_pipeline_step("diagnose", {})
        assert not step.success
        assert step.error == "Unknown pipeline step: diagnose"
