from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from blockify.core.exceptions import SchemaConfigurationError

from .model import ContentTypeSchema


class SchemaRegistry:
    """
    Maps block type names to their ContentTypeSchema.

    Populate it up front; pipelines only ever read from it, so one registry
    may serve many concurrent runs.
    """

    def __init__(self, schemas: Optional[Iterable[ContentTypeSchema]] = None):
        self._schemas: Dict[str, ContentTypeSchema] = {}
        for schema in schemas or ():
            self.register(schema)

    def register(self, schema: ContentTypeSchema, *, replace: bool = False) -> None:
        if not isinstance(schema, ContentTypeSchema):
            raise SchemaConfigurationError("schemas must be ContentTypeSchema instances")
        if schema.name in self._schemas and not replace:
            raise SchemaConfigurationError(f"schema already registered: {schema.name}")
        self._schemas[schema.name] = schema

    def get_schema(self, name: str) -> Optional[ContentTypeSchema]:
        if not isinstance(name, str):
            return None
        return self._schemas.get(name)

    def names(self) -> List[str]:
        return list(self._schemas.keys())

    def schemas(self) -> List[ContentTypeSchema]:
        # Return a copy to prevent external mutation
        return list(self._schemas.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)
