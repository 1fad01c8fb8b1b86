"""Health Risk Analysis server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from hra.core.config.settings import Settings, get_settings
from hra.core.schema.registry import SchemaRegistry
from hra.core.server.routes import register_http_routes
from hra.domains.survey.domain_logic.survey_models import GuardrailConfig
from hra.domains.survey.domain_logic.survey_schemas import SCHEMA_DIR, get_schema_registry
from hra.domains.survey.prompts.survey_prompts import register_survey_prompts
from hra.domains.survey.resources.survey_resources import register_survey_resources
from hra.domains.survey.tools.analysis_tools import register_survey_analysis_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Health Risk Analysis"
SERVER_VERSION = "0.1.0"


def build_guardrail_config(settings: Settings) -> GuardrailConfig:
    """Guardrail thresholds with any environment overrides applied."""
    return GuardrailConfig(
        min_confidence=settings.hra_min_confidence,
        max_missing_percentage=settings.hra_max_missing_percentage,
        age_min=settings.hra_age_min,
        age_max=settings.hra_age_max,
        bmi_min=settings.hra_bmi_min,
        bmi_max=settings.hra_bmi_max,
        sleep_min=settings.hra_sleep_min,
        sleep_max=settings.hra_sleep_max,
    )


def create_app(
    *,
    settings_override: Settings | None = None,
    schema_registry_override: SchemaRegistry | None = None,
) -> FastMCP:
    """Create and configure the health risk analysis server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the response schema registry
    3. Builds guardrail thresholds from settings
    4. Registers MCP tools, resources and prompts
    5. Registers the JSON HTTP API routes
    """
    settings = settings_override or get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Lifestyle survey health risk analysis. Parses structured or OCR-scanned "
            "survey answers, applies data-quality guardrails, extracts risk factors, "
            "scores them into a risk level and returns prioritized recommendations. "
            "Outputs are rule-based and deterministic, not medical advice."
        ),
    )

    # --- Schemas ---
    schemas = schema_registry_override or get_schema_registry()
    logger.info("Using %d response schemas from %s", len(schemas), SCHEMA_DIR)

    # --- Guardrails ---
    config = build_guardrail_config(settings)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "schemas_loaded": len(schemas),
            "min_confidence": config.min_confidence,
            "max_missing_percentage": config.max_missing_percentage,
        }

    register_survey_analysis_tools(
        server, config, schemas, expose_error_details=settings.hra_expose_error_details
    )
    logger.info("Survey analysis tools registered")

    # --- Register resources ---
    register_survey_resources(server, schemas)

    # --- Register prompts ---
    register_survey_prompts(server)

    # --- Register HTTP API ---
    register_http_routes(
        server, config, schemas, expose_error_details=settings.hra_expose_error_details
    )

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
