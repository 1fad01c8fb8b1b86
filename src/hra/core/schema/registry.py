"""Schema registry — in-memory index for loaded schemas."""

from __future__ import annotations

import logging

from hra.core.schema.models import Schema

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """In-memory registry of schema definitions, keyed by wire name and id."""

    def __init__(self) -> None:
        self._schemas: dict[str, Schema] = {}
        self._by_id: dict[str, str] = {}

    def register(self, schema: Schema) -> None:
        if schema.name in self._schemas or schema.id in self._by_id:
            raise ValueError(f"Duplicate schema registered: {schema.name!r} ({schema.id!r})")
        self._schemas[schema.name] = schema
        self._by_id[schema.id] = schema.name

    def get(self, name: str) -> Schema | None:
        """Look up a schema by wire name (``parseResponse``) or id (``parse_response``)."""
        if name in self._schemas:
            return self._schemas[name]
        wire_name = self._by_id.get(name)
        return self._schemas[wire_name] if wire_name else None

    def names(self) -> list[str]:
        return list(self._schemas)

    def all(self) -> list[Schema]:
        return list(self._schemas.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __len__(self) -> int:
        return len(self._schemas)
