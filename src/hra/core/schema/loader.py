"""Schema loader — reads YAML schema definitions from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from hra.core.schema.models import PropertySchema, Schema
from hra.core.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)


def load_schema_directory(directory: str | Path, registry: SchemaRegistry) -> int:
    """Load all YAML schema definitions from a directory (recursively).

    Returns the number of schemas loaded.
    Skips files starting with underscore.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Schema directory does not exist: %s", directory)
        return 0

    count = 0
    for path in sorted(directory.rglob("*.yaml")):
        if path.name.startswith("_"):
            continue
        try:
            schema = load_schema_file(path)
            registry.register(schema)
            count += 1
            logger.debug("Loaded schema: %s (%s)", schema.name, schema.id)
        except Exception:
            logger.exception("Failed to load schema from %s", path)
    return count


def parse_property(data: dict[str, Any]) -> PropertySchema:
    items = data.get("items")
    return PropertySchema(
        type=data.get("type"),
        enum=data.get("enum"),
        min=data.get("min"),
        max=data.get("max"),
        items=parse_property(items) if isinstance(items, dict) else None,
        optional=bool(data.get("optional", False)),
    )


def load_schema_file(path: Path) -> Schema:
    """Parse a YAML file into a Schema instance."""
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f)

    return Schema(
        id=data["id"],
        name=data.get("name", data["id"]),
        description=(data.get("description") or "").strip(),
        required=list(data.get("required", [])),
        properties={
            name: parse_property(spec or {})
            for name, spec in (data.get("properties") or {}).items()
        },
    )
