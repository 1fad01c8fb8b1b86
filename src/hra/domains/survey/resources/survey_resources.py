"""MCP Resources for survey field and schema discovery."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from hra.domains.survey.domain_logic.survey_models import (
    CORE_FIELDS,
    EXPECTED_FIELDS,
    FIELD_DESCRIPTIONS,
)

if TYPE_CHECKING:
    from hra.core.schema.registry import SchemaRegistry


def register_survey_resources(mcp: FastMCP, schemas: SchemaRegistry) -> None:
    """Register survey discovery resources on the MCP server."""

    @mcp.resource("survey://fields")
    def survey_fields_resource() -> str:
        """Survey fields the analyzer understands, with accepted values."""
        return json.dumps(
            {
                "fields": EXPECTED_FIELDS,
                "core_fields": CORE_FIELDS,
                "descriptions": FIELD_DESCRIPTIONS,
            },
            indent=2,
        )

    @mcp.resource("survey://schemas")
    def survey_schemas_resource() -> str:
        """Registered response schemas, keyed by wire name."""
        return json.dumps(
            {
                "schema_count": len(schemas),
                "schemas": {
                    s.name: {"id": s.id, "description": s.description, **s.to_dict()}
                    for s in schemas.all()
                },
            },
            indent=2,
        )
