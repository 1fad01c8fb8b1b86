"""Survey response schemas shipped with the package."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from hra.core.schema.loader import load_schema_directory
from hra.core.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

# Schema YAML definitions live under src/hra/domains/survey/schemas/
SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"

PARSE_RESPONSE = "parseResponse"
FACTOR_RESPONSE = "factorResponse"
RISK_RESPONSE = "riskResponse"
ANALYSIS_RESPONSE = "analysisResponse"
ERROR_RESPONSE = "errorResponse"
INPUT_ANSWERS = "inputAnswers"


@lru_cache(maxsize=1)
def get_schema_registry() -> SchemaRegistry:
    """Load the packaged schemas once and return the shared, read-only registry."""
    registry = SchemaRegistry()
    count = load_schema_directory(SCHEMA_DIR, registry)
    logger.info("Loaded %d survey schemas from %s", count, SCHEMA_DIR)
    return registry
