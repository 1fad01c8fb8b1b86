"""Data models for declarative response schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SCHEMA_TYPES = ("object", "array", "string", "number", "boolean")


@dataclass
class PropertySchema:
    """Constraints on a single property value."""

    type: str | None = None
    enum: list[Any] | None = None
    min: float | None = None
    max: float | None = None
    items: PropertySchema | None = None
    optional: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.type is not None:
            data["type"] = self.type
        if self.enum is not None:
            data["enum"] = list(self.enum)
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        if self.items is not None:
            data["items"] = self.items.to_dict()
        if self.optional:
            data["optional"] = True
        return data


@dataclass
class Schema:
    """A named structural schema (required keys + per-property constraints)."""

    id: str
    name: str
    description: str = ""
    required: list[str] = field(default_factory=list)
    properties: dict[str, PropertySchema] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.required:
            data["required"] = list(self.required)
        data["properties"] = {k: v.to_dict() for k, v in self.properties.items()}
        return data


@dataclass
class SchemaValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}
