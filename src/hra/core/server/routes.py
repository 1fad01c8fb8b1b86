"""HTTP API routes mounted on the FastMCP HTTP app."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from hra.core.schema.registry import SchemaRegistry
from hra.core.schema.responses import create_error_response, utc_timestamp
from hra.core.schema.validator import validate_schema
from hra.domains.survey.domain_logic.guardrails import validate_input, validate_ocr_text
from hra.domains.survey.domain_logic.pipeline import (
    SurveyInputError,
    run_analysis_pipeline,
    run_legacy_analysis,
    run_pipeline_step,
)
from hra.domains.survey.domain_logic.survey_models import (
    CORE_FIELDS,
    EXPECTED_FIELDS,
    FIELD_DESCRIPTIONS,
    GuardrailConfig,
)
from hra.domains.survey.domain_logic.survey_schemas import PARSE_RESPONSE

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[JSONResponse]]


class InvalidRequestBody(ValueError):
    """The request body is not valid JSON."""


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise InvalidRequestBody(str(exc)) from exc


def _field(body: Any, *names: str, default: Any = None) -> Any:
    if not isinstance(body, Mapping):
        return default
    for name in names:
        if name in body:
            return body[name]
    return default


def _bad_request(status: str, reason: str, **extras: Any) -> JSONResponse:
    return JSONResponse(create_error_response(status, reason, **extras), status_code=400)


def register_http_routes(
    mcp: FastMCP,
    config: GuardrailConfig,
    schemas: SchemaRegistry,
    *,
    expose_error_details: bool = False,
) -> None:
    """Register the JSON HTTP API on the MCP server's Starlette app."""

    def guarded(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def endpoint(request: Request) -> JSONResponse:
            try:
                return await handler(request)
            except InvalidRequestBody:
                return _bad_request("invalid_json", "Request body must be valid JSON")
            except SurveyInputError as exc:
                return _bad_request("invalid_input", str(exc))
            except Exception as exc:
                logger.exception("Unhandled error in %s %s", request.method, request.url.path)
                reason = str(exc) if expose_error_details else "Internal server error"
                return JSONResponse(
                    create_error_response("internal_error", reason), status_code=500
                )

        return endpoint

    # -- Full analysis --------------------------------------------------------

    @mcp.custom_route("/api/analyze", methods=["POST"])
    @guarded
    async def analyze(request: Request) -> JSONResponse:
        body = await _read_json(request)
        options = _field(body, "options", default={}) or {}
        result = run_analysis_pipeline(
            _field(body, "input"),
            is_ocr=bool(_field(body, "isOcr", "is_ocr", default=False)),
            validate_schemas=bool(_field(options, "validateSchemas", "validate_schemas", default=True)),
            stop_on_warning=bool(_field(options, "stopOnWarning", "stop_on_warning", default=False)),
            expose_error_details=expose_error_details,
            config=config,
            schema_registry=schemas,
        )
        if result.success:
            return JSONResponse(result.data)
        if result.rejected_input:
            return JSONResponse(result.error, status_code=400)
        return JSONResponse(result.error)

    @mcp.custom_route("/api/analyze/legacy", methods=["POST"])
    @guarded
    async def analyze_legacy(request: Request) -> JSONResponse:
        body = await _read_json(request)
        result = run_legacy_analysis(
            _field(body, "input"),
            is_ocr=bool(_field(body, "isOcr", "is_ocr", default=False)),
            config=config,
        )
        return JSONResponse(result.payload, status_code=400 if result.rejected_input else 200)

    # -- Single stages ---------------------------------------------------------

    @mcp.custom_route("/api/analyze/parse", methods=["POST"])
    @guarded
    async def analyze_parse(request: Request) -> JSONResponse:
        body = await _read_json(request)
        raw = _field(body, "input")
        is_ocr = bool(_field(body, "isOcr", "is_ocr", default=False))

        input_check = validate_input(raw)
        if not input_check.is_valid:
            return _bad_request(input_check.status, input_check.reason)
        if is_ocr and isinstance(raw, str):
            ocr_check = validate_ocr_text(raw, config)
            if not ocr_check.is_valid:
                return _bad_request(ocr_check.status, ocr_check.reason)

        step = run_pipeline_step("parse", raw, is_ocr=is_ocr)
        parsed = step.data.to_dict()
        schema = schemas.get(PARSE_RESPONSE)
        validation = validate_schema(parsed, schema) if schema else None
        return JSONResponse(
            {
                **parsed,
                "schema_valid": validation.is_valid if validation else True,
                "schema_errors": validation.errors if validation else [],
            }
        )

    @mcp.custom_route("/api/analyze/factors", methods=["POST"])
    @guarded
    async def analyze_factors(request: Request) -> JSONResponse:
        body = await _read_json(request)
        step = run_pipeline_step("factors", _field(body, "answers"))
        return JSONResponse(step.data.to_dict())

    @mcp.custom_route("/api/analyze/risk", methods=["POST"])
    @guarded
    async def analyze_risk(request: Request) -> JSONResponse:
        body = await _read_json(request)
        step = run_pipeline_step(
            "risk",
            {"factors": _field(body, "factors"), "answers": _field(body, "answers", default={})},
        )
        return JSONResponse(step.data.to_dict())

    @mcp.custom_route("/api/analyze/recommendations", methods=["POST"])
    @guarded
    async def analyze_recommendations(request: Request) -> JSONResponse:
        body = await _read_json(request)
        step = run_pipeline_step(
            "recommendations",
            {
                "factors": _field(body, "factors"),
                "riskLevel": _field(body, "riskLevel", "risk_level", default="low"),
            },
        )
        return JSONResponse(step.data.to_dict())

    # -- Schemas & metadata ------------------------------------------------------

    @mcp.custom_route("/api/validate", methods=["POST"])
    @guarded
    async def validate(request: Request) -> JSONResponse:
        body = await _read_json(request)
        schema_name = _field(body, "schema")
        schema = schemas.get(schema_name) if isinstance(schema_name, str) else None
        if schema is None:
            return _bad_request(
                "invalid_schema",
                f"Unknown schema: {schema_name}",
                available=schemas.names(),
            )
        return JSONResponse(validate_schema(_field(body, "data"), schema).to_dict())

    @mcp.custom_route("/api/schemas", methods=["GET"])
    @guarded
    async def list_schemas(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "schemas": {
                    s.name: {"description": s.description, **s.to_dict()}
                    for s in schemas.all()
                }
            }
        )

    @mcp.custom_route("/api/fields", methods=["GET"])
    @guarded
    async def list_fields(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "fields": list(EXPECTED_FIELDS),
                "core_fields": list(CORE_FIELDS),
                "descriptions": dict(FIELD_DESCRIPTIONS),
            }
        )

    @mcp.custom_route("/api/health", methods=["GET"])
    @guarded
    async def health(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "timestamp": utc_timestamp(),
                "schemas_loaded": len(schemas),
            }
        )
