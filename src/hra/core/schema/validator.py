"""Structural validation of data against schemas, and of schema YAML files themselves."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from hra.core.schema.loader import load_schema_file
from hra.core.schema.models import SCHEMA_TYPES, PropertySchema, Schema, SchemaValidation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data validation
# ---------------------------------------------------------------------------

def type_name(value: Any) -> str:
    """Wire-level type name of a value (bool is not a number)."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def validate_property(value: Any, prop: PropertySchema, prop_name: str) -> list[str]:
    """Validate one value. ``None`` means "not supplied" and always passes."""
    errors: list[str] = []

    if value is None:
        return errors

    actual = type_name(value)
    if prop.type and prop.type != actual:
        errors.append(f"{prop_name}: expected {prop.type}, got {actual}")
        return errors

    if prop.enum is not None and value not in prop.enum:
        allowed = ", ".join(str(v) for v in prop.enum)
        errors.append(f'{prop_name}: value "{value}" not in allowed values [{allowed}]')

    if prop.type == "number":
        if prop.min is not None and value < prop.min:
            errors.append(f"{prop_name}: value {_fmt(value)} is below minimum {_fmt(prop.min)}")
        if prop.max is not None and value > prop.max:
            errors.append(f"{prop_name}: value {_fmt(value)} exceeds maximum {_fmt(prop.max)}")

    if prop.type == "array" and prop.items is not None:
        for index, item in enumerate(value):
            errors.extend(validate_property(item, prop.items, f"{prop_name}[{index}]"))

    return errors


def validate_schema(data: Any, schema: Schema) -> SchemaValidation:
    """Check required keys and per-property constraints."""
    if not isinstance(data, Mapping):
        return SchemaValidation(
            is_valid=False,
            errors=[f"Expected object, got {type_name(data)}"],
        )

    errors: list[str] = []
    for field_name in schema.required:
        if field_name not in data:
            errors.append(f"Missing required field: {field_name}")

    for prop_name, prop in schema.properties.items():
        errors.extend(validate_property(data.get(prop_name), prop, prop_name))

    return SchemaValidation(is_valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Schema file validation
# ---------------------------------------------------------------------------

def _check_property(prop: PropertySchema, where: str, errors: list[str]) -> None:
    if prop.type is not None and prop.type not in SCHEMA_TYPES:
        errors.append(f"{where}: Unknown type '{prop.type}'")
    if (prop.min is not None or prop.max is not None) and prop.type != "number":
        errors.append(f"{where}: min/max only apply to number properties")
    if prop.items is not None:
        if prop.type != "array":
            errors.append(f"{where}: items only apply to array properties")
        _check_property(prop.items, f"{where}.items", errors)


def validate_schema_file(path: Path) -> tuple[Schema | None, list[str]]:
    """Validate a single schema YAML file.

    Returns: (schema_or_none, errors)
    """
    try:
        schema = load_schema_file(path)
    except Exception as exc:
        return None, [f"{path}: Failed to load — {exc}"]

    errors: list[str] = []
    if not schema.properties:
        errors.append(f"{path}: Schema defines no properties")

    for field_name in schema.required:
        if field_name not in schema.properties:
            errors.append(f"{path}: Required field '{field_name}' has no property definition")

    for name, prop in schema.properties.items():
        _check_property(prop, f"{path}: {name}", errors)

    if path.stem != schema.id:
        errors.append(f"{path}: Filename should match schema id '{schema.id}'")

    return schema, errors


def validate_schema_directory(directory: str | Path) -> tuple[int, list[str]]:
    """Validate all schema YAML files in a directory.

    Returns: (schema_count, errors)
    """
    directory = Path(directory)
    if not directory.is_dir():
        return 0, [f"Schema directory not found: {directory}"]

    yaml_files = sorted(p for p in directory.rglob("*.yaml") if not p.name.startswith("_"))
    if not yaml_files:
        return 0, [f"No schema YAML files found in {directory}"]

    errors: list[str] = []
    seen: dict[str, Path] = {}
    loaded = 0

    for path in yaml_files:
        schema, file_errors = validate_schema_file(path)
        if file_errors:
            errors.extend(file_errors)
            continue

        assert schema is not None  # for type checkers
        loaded += 1

        if schema.name in seen:
            errors.append(
                f"{path}: Duplicate schema name '{schema.name}' — already defined in {seen[schema.name]}"
            )
        else:
            seen[schema.name] = path

    return loaded, errors
