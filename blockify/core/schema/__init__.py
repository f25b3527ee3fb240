"""Block type schemas and the registry that resolves them."""

from .model import (
    DEFAULT_ALLOWED_TAGS,
    DEFAULT_BLOCK_STRUCTURE,
    DEFAULT_SOURCE_PROTOCOLS,
    DEFAULT_TAG_ATTRIBUTE_RULES,
    ContentTypeSchema,
)
from .registry import SchemaRegistry
from .builtin import (
    builtin_schemas,
    code_schema,
    default_registry,
    files_schema,
    gallery_schema,
    header_schema,
    ordered_list_schema,
    paragraph_schema,
    unordered_list_schema,
)

__all__ = [
    "DEFAULT_ALLOWED_TAGS",
    "DEFAULT_BLOCK_STRUCTURE",
    "DEFAULT_SOURCE_PROTOCOLS",
    "DEFAULT_TAG_ATTRIBUTE_RULES",
    "ContentTypeSchema",
    "SchemaRegistry",
    "builtin_schemas",
    "code_schema",
    "default_registry",
    "files_schema",
    "gallery_schema",
    "header_schema",
    "ordered_list_schema",
    "paragraph_schema",
    "unordered_list_schema",
]
