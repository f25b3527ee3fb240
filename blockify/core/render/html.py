from __future__ import annotations

import html
import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from blockify.core.config import BlockifyConfig
from blockify.core.schema.model import ContentTypeSchema
from blockify.core.schema.registry import SchemaRegistry

log = logging.getLogger("blockify.core")


def render_attributes(attributes: Any) -> str:
    """Render an attribute mapping as a leading-space attribute string.

    - True -> bare name
    - other scalars -> name="value" (value HTML-escaped)
    - False, None and non-scalars -> omitted
    """

    if not isinstance(attributes, Mapping) or not attributes:
        return ""

    parts: List[str] = []
    for name, value in attributes.items():
        if isinstance(value, bool):
            if value:
                parts.append(str(name))
        elif isinstance(value, (str, int, float)):
            parts.append(f'{name}="{html.escape(str(value), quote=True)}"')
    return " " + " ".join(parts) if parts else ""


class HtmlRenderer:
    """
    Emits markup for canonical block trees.

    Input must come out of the normalizer: text nodes are emitted verbatim
    since they were escaped there. Attribute values are escaped here.
    """

    def __init__(self, registry: SchemaRegistry, config: Optional[BlockifyConfig] = None):
        self.registry = registry
        self.config = config or BlockifyConfig()

    def css_name(self, schema: ContentTypeSchema) -> str:
        return f"{self.config.block_css_prefix}-{schema.name}"

    def render(self, blocks: Sequence[Mapping[str, Any]]) -> str:
        out: List[str] = []
        for block in blocks or ():
            if not isinstance(block, Mapping) or not block.get("type") or not block.get("data"):
                continue
            schema = self.registry.get_schema(block["type"])
            if schema is None:
                log.debug("skipping block of unregistered type %s", block["type"])
                continue
            out.append(self.render_block(block, schema))
        return "".join(out)

    def render_only(
        self,
        blocks: Sequence[Mapping[str, Any]],
        allowed_types: Iterable[str],
        *,
        as_text: bool = False,
    ) -> str:
        allowed = set(allowed_types)
        selected = [b for b in blocks or () if isinstance(b, Mapping) and b.get("type") in allowed]
        if as_text:
            return self.render_as_text(selected)
        return self.render(selected)

    def render_as_text(self, blocks: Sequence[Mapping[str, Any]]) -> str:
        """Space-joined text nodes; blocks of flat custom items carry none."""

        texts: List[str] = []
        for block in blocks or ():
            if not isinstance(block, Mapping):
                continue
            schema = self.registry.get_schema(block.get("type"))
            if schema is None or schema.is_custom_item_structure:
                continue
            self._collect_text(block.get("data"), texts)
        return " ".join(texts)

    def _collect_text(self, items: Any, into: List[str]) -> None:
        if not isinstance(items, (list, tuple)):
            return
        for item in items:
            if isinstance(item, str):
                into.append(item)
            elif isinstance(item, Mapping):
                self._collect_text(item.get("data"), into)

    def render_block(self, block: Mapping[str, Any], schema: ContentTypeSchema) -> str:
        if schema.is_custom_render_block:
            if schema.render_block is None:
                return ""
            return schema.render_block(schema, block, self)

        tag = self.config.render_block_names.get(schema.output_name, schema.output_name)
        return self.render_tag(
            tag,
            self.render_items(block.get("data") or []),
            render_attributes(block.get("attr")),
        )

    def render_items(self, items: Any) -> str:
        out: List[str] = []
        for item in items if isinstance(items, (list, tuple)) else ():
            if isinstance(item, str):
                out.append(item)
            elif isinstance(item, Mapping) and item.get("type"):
                out.append(
                    self.render_tag(
                        item["type"],
                        self.render_items(item.get("data") or []),
                        render_attributes(item.get("attr")),
                    )
                )
        return "".join(out)

    def render_tag(self, tag: str, content: str, attributes: str = "") -> str:
        if not tag:
            return content
        tag = self.config.render_tag_names.get(tag, tag)
        return f"<{tag}{attributes}>{content}</{tag}>"
