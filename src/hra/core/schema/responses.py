"""Standard success/error response envelopes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from hra.core.schema.models import Schema

_TYPE_DEFAULTS: dict[str, Any] = {
    "array": list,
    "object": dict,
    "number": lambda: 0,
    "string": lambda: "",
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_schema_compliance(data: dict[str, Any], schema: Schema | None) -> dict[str, Any]:
    """Fill missing required fields with type-appropriate empty values."""
    if schema is None:
        return data

    result = dict(data)
    for field_name in schema.required:
        if field_name in result:
            continue
        prop = schema.properties.get(field_name)
        if prop is None:
            continue
        factory = _TYPE_DEFAULTS.get(prop.type or "")
        result[field_name] = factory() if factory else None
    return result


def create_error_response(status: str, reason: str, **extras: Any) -> dict[str, Any]:
    return {
        "status": status,
        "reason": reason,
        "timestamp": utc_timestamp(),
        **extras,
    }


def create_success_response(data: dict[str, Any], schema: Schema | None = None) -> dict[str, Any]:
    response = {
        "status": "ok",
        "timestamp": utc_timestamp(),
        **data,
    }
    return ensure_schema_compliance(response, schema)
