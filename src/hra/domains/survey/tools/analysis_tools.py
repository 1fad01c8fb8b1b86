"""MCP tools for lifestyle survey risk analysis.

The full pipeline is exposed as ``analyze_survey``; each stage is also
available on its own so a client can inspect intermediate results.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from hra.core.schema.validator import validate_schema
from hra.domains.survey.domain_logic.pipeline import (
    SurveyInputError,
    run_analysis_pipeline,
    run_pipeline_step,
)

if TYPE_CHECKING:
    from hra.core.schema.registry import SchemaRegistry
    from hra.domains.survey.domain_logic.survey_models import GuardrailConfig

logger = logging.getLogger(__name__)


def _step_payload(step_name: str, payload: Any, *, is_ocr: bool = False) -> str:
    try:
        step = run_pipeline_step(step_name, payload, is_ocr=is_ocr)
    except SurveyInputError as exc:
        return json.dumps({"status": "invalid_input", "reason": str(exc)})
    if not step.success:
        return json.dumps({"status": "error", "reason": step.error})
    return json.dumps(step.data.to_dict())


def register_survey_analysis_tools(
    mcp: FastMCP,
    config: GuardrailConfig,
    schemas: SchemaRegistry,
    *,
    expose_error_details: bool = False,
) -> None:
    """Register survey analysis tools on the MCP server."""

    @mcp.tool
    def analyze_survey(
        survey: dict[str, Any] | str,
        is_ocr: bool = False,
        stop_on_warning: bool = False,
        include_steps: bool = False,
    ) -> str:
        """Analyze a lifestyle survey and return risk level, factors and recommendations.

        Args:
            survey: Survey answers as an object (age, smoker, exercise, diet,
                alcohol, sleep, stress, bmi), a JSON string, or free text.
            is_ocr: Treat ``survey`` as OCR-scanned "Field: value" lines.
            stop_on_warning: Halt instead of continuing when advisory warnings exist.
            include_steps: Include the per-step execution trace.
        """
        result = run_analysis_pipeline(
            survey,
            is_ocr=is_ocr,
            stop_on_warning=stop_on_warning,
            expose_error_details=expose_error_details,
            config=config,
            schema_registry=schemas,
        )
        logger.info("analyze_survey finished in state %s", result.state.value)

        response: dict[str, Any] = {"success": result.success, "state": result.state.value}
        if result.success:
            response["data"] = result.data
        else:
            response["error"] = result.error
        if include_steps:
            response["steps"] = [s.to_dict() for s in result.steps]
        return json.dumps(response)

    @mcp.tool
    def parse_survey_input(survey: dict[str, Any] | str, is_ocr: bool = False) -> str:
        """Normalize raw survey input into canonical answers with a confidence score.

        Args:
            survey: Survey answers as an object, a JSON string, or OCR text.
            is_ocr: Treat ``survey`` as OCR-scanned text.
        """
        return _step_payload("parse", survey, is_ocr=is_ocr)

    @mcp.tool
    def extract_risk_factors(answers: dict[str, Any]) -> str:
        """Derive lifestyle risk factors (ordered by severity) from canonical answers."""
        return _step_payload("factors", answers)

    @mcp.tool
    def classify_risk_level(factors: list[str], answers: dict[str, Any] | None = None) -> str:
        """Score risk factors into a 0-100 score, a risk level and a rationale.

        Args:
            factors: Risk factor labels, e.g. ``["smoking", "low exercise"]``. Rule ids
                such as ``low_exercise`` are accepted too.
            answers: Canonical answers; ``age`` contributes the age base risk.
        """
        return _step_payload("risk", {"factors": factors, "answers": answers or {}})

    @mcp.tool
    def recommend_actions(factors: list[str], risk_level: str = "low") -> str:
        """Produce up to five prioritized recommendations for the given factors."""
        return _step_payload("recommendations", {"factors": factors, "riskLevel": risk_level})

    @mcp.tool
    def validate_against_schema(data: dict[str, Any], schema: str) -> str:
        """Validate a JSON object against one of the registered response schemas.

        Args:
            data: The object to check.
            schema: Schema name, e.g. ``analysisResponse`` (see ``survey://schemas``).
        """
        found = schemas.get(schema)
        if found is None:
            return json.dumps({
                "status": "invalid_schema",
                "reason": f"Unknown schema: {schema}",
                "available": schemas.names(),
            })
        return json.dumps(validate_schema(data, found).to_dict())
