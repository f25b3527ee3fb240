from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class NormalizeIn(BaseModel):
    """A block document, either structured or as JSON text."""

    document: Any = None
    render: bool = False


class RenderIn(BaseModel):
    document: Any = None
    only: Optional[List[str]] = None
    as_text: bool = False


class NormalizeOut(BaseModel):
    """Canonical blocks plus the per-field validation errors."""

    blocks: List[Dict[str, Any]] = Field(default_factory=list)
    errors: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    valid: bool = True
    html: Optional[str] = None


class RenderOut(BaseModel):
    html: str
    valid: bool = True


class SchemaOut(BaseModel):
    """Public summary of one registered block schema."""

    name: str
    output_name: str
    allowed_tags: List[str] = Field(default_factory=list)
    primary_child_types: List[str] = Field(default_factory=list)
    block_fields: List[str] = Field(default_factory=list)
    item_fields: List[str] = Field(default_factory=list)
    merge_similar: bool = True
    escape_text: bool = True
    remove_control_characters: bool = False
    custom_block_structure: bool = False
    custom_item_structure: bool = False
    custom_render_block: bool = False
    preformatted: bool = False
