"""Analysis pipeline orchestrator.

Runs the survey analysis as an explicit state machine::

    input_validation -> parse -> factors -> risk -> recommendations -> done
            \\             \\
             `-------------`--> failed

Every transition appends a ``StepResult`` to the trace. A failing transition
halts the run and yields a structured error payload instead of raising. Any
unexpected exception is caught here and reported as ``pipeline_error``.

All computation is deterministic and side-effect free (apart from logging).
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from hra.core.schema.registry import SchemaRegistry
from hra.core.schema.responses import (
    create_error_response,
    create_success_response,
    utc_timestamp,
)
from hra.core.schema.validator import validate_schema
from hra.domains.survey.domain_logic.factor_extractor import extract_factors, to_factor_labels
from hra.domains.survey.domain_logic.guardrails import (
    check_profile_completeness,
    validate_answer_ranges,
    validate_input,
    validate_ocr_text,
)
from hra.domains.survey.domain_logic.recommendation_engine import generate_recommendations
from hra.domains.survey.domain_logic.risk_classifier import classify_risk
from hra.domains.survey.domain_logic.survey_models import (
    DEFAULT_GUARDRAIL_CONFIG,
    FactorResult,
    GuardrailConfig,
    GuardrailResult,
    GuardrailWarning,
    ParseResult,
    RecommendationSet,
    RiskResult,
)
from hra.domains.survey.domain_logic.survey_parser import parse_survey
from hra.domains.survey.domain_logic.survey_schemas import (
    ANALYSIS_RESPONSE,
    FACTOR_RESPONSE,
    PARSE_RESPONSE,
    RISK_RESPONSE,
    get_schema_registry,
)

logger = logging.getLogger(__name__)

GENERIC_PIPELINE_ERROR = "Internal error while analyzing survey"


class SurveyInputError(ValueError):
    """A debug-step payload does not have the shape that step needs."""


class PipelineState(str, enum.Enum):
    INPUT_VALIDATION = "input_validation"
    PARSE = "parse"
    FACTORS = "factors"
    RISK = "risk"
    RECOMMENDATIONS = "recommendations"
    DONE = "done"
    FAILED = "failed"


def _plain(data: Any) -> Any:
    to_dict = getattr(data, "to_dict", None)
    return to_dict() if callable(to_dict) else data


@dataclass
class StepResult:
    """Typed outcome of one pipeline transition."""

    step: str
    success: bool
    data: Any = None
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    @classmethod
    def succeeded(cls, step: str, data: Any) -> StepResult:
        return cls(step=step, success=True, data=data)

    @classmethod
    def failed(cls, step: str, error: str, partial_data: Any = None) -> StepResult:
        return cls(step=step, success=False, data=partial_data, error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "success": self.success,
            "data": _plain(self.data),
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass
class PipelineOptions:
    is_ocr: bool = False
    validate_schemas: bool = True
    stop_on_warning: bool = False
    expose_error_details: bool = True
    config: GuardrailConfig = DEFAULT_GUARDRAIL_CONFIG


@dataclass
class PipelineResult:
    success: bool = False
    state: PipelineState = PipelineState.INPUT_VALIDATION
    steps: list[StepResult] = field(default_factory=list)
    data: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    @property
    def failed_step(self) -> str | None:
        for step in self.steps:
            if not step.success:
                return step.step
        return None

    @property
    def rejected_input(self) -> bool:
        """True when the raw input itself was unusable (reported as a client error)."""
        return self.failed_step == PipelineState.INPUT_VALIDATION.value


@dataclass
class _Transition:
    step: StepResult
    error: dict[str, Any] | None = None


@dataclass
class _PipelineRun:
    """Mutable working state of one pipeline execution."""

    raw: Any
    options: PipelineOptions
    schemas: SchemaRegistry
    warnings: list[GuardrailWarning] = field(default_factory=list)
    parse_result: ParseResult | None = None
    factor_result: FactorResult | None = None
    risk_result: RiskResult | None = None
    recommendation_set: RecommendationSet | None = None

    def check_schema(self, data: dict[str, Any], schema_name: str) -> None:
        """Log-only structural check of an intermediate result."""
        if not self.options.validate_schemas:
            return
        schema = self.schemas.get(schema_name)
        if schema is None:
            logger.warning("Schema %s is not registered; skipping validation", schema_name)
            return
        validation = validate_schema(data, schema)
        if not validation.is_valid:
            logger.warning("%s schema validation warnings: %s", schema_name, validation.errors)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def _guardrail_error(check: GuardrailResult, **extras: Any) -> dict[str, Any]:
    return create_error_response(check.status, check.reason, **extras)


def _partial_parse_extras(check: GuardrailResult, parse_result: ParseResult) -> dict[str, Any]:
    return {
        "missing_fields": check.missing_fields or list(parse_result.missing_fields),
        "partial_parse": {
            "answers": dict(parse_result.answers),
            "confidence": parse_result.confidence,
        },
    }


def _input_validation(run: _PipelineRun) -> _Transition:
    step = PipelineState.INPUT_VALIDATION.value
    check = validate_input(run.raw)
    if not check.is_valid:
        return _Transition(StepResult.failed(step, check.reason), _guardrail_error(check))
    return _Transition(StepResult.succeeded(step, {"valid": True}))


def _parse(run: _PipelineRun) -> _Transition:
    step = PipelineState.PARSE.value
    config = run.options.config

    if run.options.is_ocr:
        ocr_check = validate_ocr_text(run.raw, config)
        if not ocr_check.is_valid:
            return _Transition(StepResult.failed(step, ocr_check.reason), _guardrail_error(ocr_check))
        run.warnings.extend(ocr_check.warnings)

    parse_result = parse_survey(run.raw, run.options.is_ocr)
    run.check_schema(parse_result.to_dict(), PARSE_RESPONSE)

    completeness = check_profile_completeness(parse_result, config)
    if not completeness.is_valid:
        return _Transition(
            StepResult.failed(step, completeness.reason, parse_result),
            _guardrail_error(completeness, **_partial_parse_extras(completeness, parse_result)),
        )
    run.warnings = completeness.warnings + run.warnings

    if run.options.stop_on_warning and run.warnings:
        reason = "Analysis stopped on warnings: " + "; ".join(w.type for w in run.warnings)
        halt = GuardrailResult.fail("warnings_present", reason)
        return _Transition(
            StepResult.failed(step, reason, parse_result),
            _guardrail_error(
                halt,
                warnings=[w.to_dict() for w in run.warnings],
                **_partial_parse_extras(halt, parse_result),
            ),
        )

    ranges = validate_answer_ranges(parse_result.answers, config)
    if not ranges.is_valid:
        parse_result = dataclasses.replace(
            parse_result,
            answers=ranges.corrected_answers,
            corrections=ranges.corrections,
        )

    run.parse_result = parse_result
    return _Transition(StepResult.succeeded(step, parse_result))


def _factors(run: _PipelineRun) -> _Transition:
    assert run.parse_result is not None
    run.factor_result = extract_factors(run.parse_result.answers)
    run.check_schema(run.factor_result.to_dict(), FACTOR_RESPONSE)
    return _Transition(StepResult.succeeded(PipelineState.FACTORS.value, run.factor_result))


def _risk(run: _PipelineRun) -> _Transition:
    assert run.parse_result is not None and run.factor_result is not None
    run.risk_result = classify_risk(run.factor_result.factors, run.parse_result.answers)
    run.check_schema(run.risk_result.to_dict(), RISK_RESPONSE)
    return _Transition(StepResult.succeeded(PipelineState.RISK.value, run.risk_result))


def _recommendations(run: _PipelineRun) -> _Transition:
    assert run.factor_result is not None and run.risk_result is not None
    run.recommendation_set = generate_recommendations(
        run.factor_result.factors, run.risk_result.risk_level
    )
    return _Transition(
        StepResult.succeeded(PipelineState.RECOMMENDATIONS.value, run.recommendation_set)
    )


_TRANSITIONS: dict[PipelineState, tuple[Callable[[_PipelineRun], _Transition], PipelineState]] = {
    PipelineState.INPUT_VALIDATION: (_input_validation, PipelineState.PARSE),
    PipelineState.PARSE: (_parse, PipelineState.FACTORS),
    PipelineState.FACTORS: (_factors, PipelineState.RISK),
    PipelineState.RISK: (_risk, PipelineState.RECOMMENDATIONS),
    PipelineState.RECOMMENDATIONS: (_recommendations, PipelineState.DONE),
}


def _compile_response(run: _PipelineRun, step_count: int) -> dict[str, Any]:
    parse_result = run.parse_result
    factor_result = run.factor_result
    risk_result = run.risk_result
    recs = run.recommendation_set
    assert parse_result and factor_result and risk_result and recs

    data = {
        "answers": dict(parse_result.answers),
        "missing_fields": list(parse_result.missing_fields),
        "parse_confidence": parse_result.confidence,
        "corrections": [c.to_dict() for c in parse_result.corrections],
        "factors": list(factor_result.factors),
        "factor_confidence": factor_result.confidence,
        "factor_details": [d.to_dict() for d in factor_result.factor_details],
        "risk_level": risk_result.risk_level,
        "score": risk_result.score,
        "rationale": list(risk_result.rationale),
        "recommendations": list(recs.recommendations),
        "detailed_recommendations": [r.to_dict() for r in recs.detailed_recommendations],
        "warnings": [w.to_dict() for w in run.warnings],
        "pipeline_steps": step_count,
    }
    return create_success_response(data, run.schemas.get(ANALYSIS_RESPONSE))


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def run_analysis_pipeline(
    raw: Any,
    *,
    is_ocr: bool = False,
    validate_schemas: bool = True,
    stop_on_warning: bool = False,
    expose_error_details: bool = True,
    config: GuardrailConfig | None = None,
    schema_registry: SchemaRegistry | None = None,
) -> PipelineResult:
    """Run the full traced analysis over one survey input. Never raises."""
    options = PipelineOptions(
        is_ocr=is_ocr,
        validate_schemas=validate_schemas,
        stop_on_warning=stop_on_warning,
        expose_error_details=expose_error_details,
        config=config or DEFAULT_GUARDRAIL_CONFIG,
    )
    result = PipelineResult()

    try:
        run = _PipelineRun(raw=raw, options=options, schemas=schema_registry or get_schema_registry())

        while result.state not in (PipelineState.DONE, PipelineState.FAILED):
            handler, next_state = _TRANSITIONS[result.state]
            transition = handler(run)
            result.steps.append(transition.step)
            if not transition.step.success:
                logger.info(
                    "Pipeline halted at %s: %s",
                    transition.step.step,
                    (transition.error or {}).get("status"),
                )
                result.error = transition.error
                result.state = PipelineState.FAILED
            else:
                result.state = next_state

        if result.state is PipelineState.DONE:
            result.data = _compile_response(run, len(result.steps))
            result.success = True

    except Exception as exc:
        logger.exception("Analysis pipeline failed in state %s", result.state.value)
        reason = str(exc) if options.expose_error_details else GENERIC_PIPELINE_ERROR
        result.steps.append(StepResult.failed(result.state.value, reason))
        result.error = create_error_response("pipeline_error", reason)
        result.state = PipelineState.FAILED
        result.success = False

    return result


@dataclass
class LegacyResult:
    success: bool
    payload: dict[str, Any]
    rejected_input: bool = False


def run_legacy_analysis(
    raw: Any,
    *,
    is_ocr: bool = False,
    config: GuardrailConfig | None = None,
) -> LegacyResult:
    """Single-pass analysis without a step trace or schema logging.

    Unexpected exceptions propagate to the caller.
    """
    config = config or DEFAULT_GUARDRAIL_CONFIG

    input_check = validate_input(raw)
    if not input_check.is_valid:
        return LegacyResult(False, _guardrail_error(input_check), rejected_input=True)

    warnings: list[GuardrailWarning] = []
    if is_ocr and isinstance(raw, str):
        ocr_check = validate_ocr_text(raw, config)
        if not ocr_check.is_valid:
            return LegacyResult(False, _guardrail_error(ocr_check), rejected_input=True)
        warnings.extend(ocr_check.warnings)

    parse_result = parse_survey(raw, is_ocr)
    completeness = check_profile_completeness(parse_result, config)
    if not completeness.is_valid:
        return LegacyResult(
            False,
            _guardrail_error(completeness, **_partial_parse_extras(completeness, parse_result)),
        )

    ranges = validate_answer_ranges(parse_result.answers, config)
    answers = ranges.corrected_answers

    factor_result = extract_factors(answers)
    risk_result = classify_risk(factor_result.factors, answers)
    recs = generate_recommendations(factor_result.factors, risk_result.risk_level)

    payload = create_success_response(
        {
            "answers": answers,
            "missing_fields": list(parse_result.missing_fields),
            "parse_confidence": parse_result.confidence,
            "corrections": [c.to_dict() for c in ranges.corrections],
            "factors": list(factor_result.factors),
            "factor_confidence": factor_result.confidence,
            "risk_level": risk_result.risk_level,
            "score": risk_result.score,
            "rationale": list(risk_result.rationale),
            "recommendations": list(recs.recommendations),
            "detailed_recommendations": [r.to_dict() for r in recs.detailed_recommendations],
            "warnings": [w.to_dict() for w in completeness.warnings + warnings],
        },
        get_schema_registry().get(ANALYSIS_RESPONSE),
    )
    return LegacyResult(True, payload)


# ---------------------------------------------------------------------------
# Single-step execution (debug surfaces)
# ---------------------------------------------------------------------------

def _require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SurveyInputError(f"{name} must be an object")
    return value


def _require_list(value: Any, name: str) -> list[Any]:
    if not isinstance(value, list):
        raise SurveyInputError(f"{name} must be an array")
    return value


def run_pipeline_step(step_name: str, payload: Any, *, is_ocr: bool = False) -> StepResult:
    """Run one stage in isolation.

    Payloads: ``parse`` takes raw survey input, ``factors`` an answer mapping,
    ``risk`` ``{factors, answers}``, ``recommendations`` ``{factors, riskLevel}``.

    Raises:
        SurveyInputError: the payload does not have the shape the step needs.
    """
    if step_name == PipelineState.PARSE.value:
        return StepResult.succeeded(step_name, parse_survey(payload, is_ocr))

    if step_name == PipelineState.FACTORS.value:
        answers = _require_mapping(payload, "answers")
        return StepResult.succeeded(step_name, extract_factors(answers))

    if step_name == PipelineState.RISK.value:
        body = _require_mapping(payload, "payload")
        factors = to_factor_labels(_require_list(body.get("factors"), "factors"))
        answers = body.get("answers") or {}
        _require_mapping(answers, "answers")
        return StepResult.succeeded(step_name, classify_risk(factors, answers))

    if step_name == PipelineState.RECOMMENDATIONS.value:
        body = _require_mapping(payload, "payload")
        factors = to_factor_labels(_require_list(body.get("factors"), "factors"))
        risk_level = body.get("riskLevel") or body.get("risk_level") or "low"
        return StepResult.succeeded(step_name, generate_recommendations(factors, risk_level))

    return StepResult.failed(step_name, f"Unknown pipeline step: {step_name}")
