from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from blockify.core.config import BlockifyConfig
from blockify.core.sanitizer import strip_control_characters
from blockify.core.schema.model import ContentTypeSchema
from blockify.core.schema.registry import SchemaRegistry
from blockify.core.validation.errors import ErrorReport
from blockify.core.validation.validator import RuleValidator

from .merge import merge_similar_items

log = logging.getLogger("blockify.core")

# Edge characters trimmed from text nodes; a bare str.strip() would also eat NBSP.
_TRIM_CHARS = " \t\n\r\0\x0b"


def _children(data: Any) -> List[Any]:
    if isinstance(data, Mapping):
        return list(data.values())
    if isinstance(data, (list, tuple)):
        return list(data)
    return []


@dataclass(frozen=True)
class TreeNormalizer:
    """
    Validates and filters raw blocks into the canonical block tree.

    Stages
    - A: admit blocks with a registered string type and non-empty list data
    - B: keep only top-level keys declared in the block structure rules
    - C: per-block strategy (default, primary-child or custom structure)
    - D: recursive item processing (text and element nodes)
    - E: block-level merge; empty blocks are dropped

    Security invariants
    - Holds no per-run state; the ErrorReport is passed in by the caller
    - Every element type in the output is in its schema's allowed_tags
    - Nesting deeper than config.max_depth is dropped
    """

    registry: SchemaRegistry
    config: BlockifyConfig = field(default_factory=BlockifyConfig)

    def normalize(self, document: Any, report: ErrorReport) -> List[Dict[str, Any]]:
        return self.process_blocks(self.prepare_blocks(document), report)

    # Stage A/B

    def is_admissible(self, item: Any) -> bool:
        if not isinstance(item, Mapping):
            return False
        block_type = item.get("type")
        data = item.get("data")
        return (
            isinstance(block_type, str)
            and isinstance(data, list)
            and len(data) > 0
            and self.registry.get_schema(block_type) is not None
        )

    def prepare_blocks(self, document: Any) -> List[Dict[str, Any]]:
        if not isinstance(document, list):
            return []

        out: List[Dict[str, Any]] = []
        for item in document:
            if not self.is_admissible(item):
                log.debug("dropping inadmissible block")
                continue
            schema = self.registry.get_schema(item["type"])
            keys = schema.block_structure_rules.keys()
            out.append({k: v for k, v in item.items() if k in keys})
        return out

    # Stage C/E

    def process_blocks(
        self, blocks: List[Dict[str, Any]], report: ErrorReport
    ) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for block in blocks:
            schema = self.registry.get_schema(block["type"])

            if schema.remove_control_characters and block.get("data"):
                block = dict(block)
                block["data"] = self._strip_control_characters(block["data"])

            if schema.is_custom_block_structure:
                processed = self.process_custom_block(block, schema, report)
            else:
                processed = self.process_default_block(block, schema, report)

            if not processed or not processed.get("data"):
                log.debug("dropping empty block of type %s", block["type"])
                continue

            processed["data"] = merge_similar_items(processed["data"], schema)
            out.append(processed)
        return out

    @staticmethod
    def _strip_control_characters(data: Any) -> Any:
        encoded = json.dumps(data, ensure_ascii=False)
        try:
            return json.loads(strip_control_characters(encoded))
        except ValueError:
            log.warning("control character stripping produced invalid JSON; keeping data")
            return data

    def process_default_block(
        self, block: Dict[str, Any], schema: ContentTypeSchema, report: ErrorReport
    ) -> Optional[Dict[str, Any]]:
        out = dict(block)
        out["data"] = []

        if "attr" in out:
            attr = self._filter_attributes(out.pop("attr"), block["type"], schema, report)
            if attr is None:
                return None
            if attr:
                out["attr"] = attr

        for item in _children(block.get("data")):
            if schema.primary_child_types:
                child = self.process_primary_child(item, schema, report)
            else:
                child = self.process_item(item, schema, report, depth=1)
            if child is not None:
                out["data"].append(child)

        return out

    def process_primary_child(
        self, item: Any, schema: ContentTypeSchema, report: ErrorReport
    ) -> Optional[Dict[str, Any]]:
        if not (
            isinstance(item, Mapping)
            and isinstance(item.get("type"), str)
            and item["type"] in schema.primary_child_types
        ):
            return None

        # Primary children reuse the block-level rules, not item rules.
        filtered = RuleValidator.filter(item, schema.block_structure_rules, report)
        if filtered is None:
            return None

        if "attr" in filtered:
            attr = self._filter_attributes(filtered.pop("attr"), item["type"], schema, report)
            if attr is None:
                return None
            if attr:
                filtered["attr"] = attr

        children: List[Any] = []
        for sub in _children(filtered.get("data")):
            node = self.process_item(sub, schema, report, depth=2)
            if node:
                children.append(node)

        if not children:
            return None
        filtered["data"] = children
        return filtered

    def process_custom_block(
        self, block: Dict[str, Any], schema: ContentTypeSchema, report: ErrorReport
    ) -> Optional[Dict[str, Any]]:
        prepared = RuleValidator.filter(block, schema.block_structure_rules, report)
        if prepared is None:
            return None
        prepared.setdefault("type", block["type"])

        if not schema.is_custom_item_structure:
            return self.process_default_block(prepared, schema, report)

        items: List[Any] = []
        for raw in _children(prepared.get("data")):
            filtered = RuleValidator.filter(raw, schema.item_structure_rules, report)
            if filtered is None:
                continue
            customized = schema.customize_item(filtered)
            if customized is not None:
                items.append(customized)

        prepared["data"] = items
        return prepared

    # Stage D

    def process_item(
        self, item: Any, schema: ContentTypeSchema, report: ErrorReport, *, depth: int
    ) -> Any:
        if isinstance(item, str):
            return self.process_text(item, schema)
        if isinstance(item, Mapping):
            return self.process_element(item, schema, report, depth=depth)
        return None

    @staticmethod
    def process_text(text: str, schema: ContentTypeSchema) -> Optional[str]:
        if schema.escape_text:
            text = html.escape(text, quote=True)
        trimmed = text.strip(_TRIM_CHARS)
        if not trimmed:
            return None
        return text if schema.is_preformatted else trimmed

    def process_element(
        self,
        item: Mapping[str, Any],
        schema: ContentTypeSchema,
        report: ErrorReport,
        *,
        depth: int,
    ) -> Optional[Dict[str, Any]]:
        if depth > self.config.max_depth:
            log.debug("dropping element nested deeper than %d", self.config.max_depth)
            return None

        tag = item.get("type")
        if not isinstance(tag, str) or not tag or tag not in schema.allowed_tags:
            return None

        data = item.get("data")
        attr = item.get("attr")
        if not data and not attr:
            return None

        result: Dict[str, Any] = {"type": tag}

        if isinstance(attr, Mapping):
            filtered = self._filter_attributes(attr, tag, schema, report)
            if filtered is None:
                return None
            if filtered:
                result["attr"] = filtered

        children: List[Any] = []
        for sub in _children(data):
            if isinstance(sub, str):
                text = self.process_text(sub, schema)
                if text is not None:
                    children.append(text)
            elif isinstance(sub, Mapping):
                node = self.process_element(sub, schema, report, depth=depth + 1)
                if node is not None:
                    children.append(node)

        if not children:
            return None
        result["data"] = merge_similar_items(children, schema)
        return result

    @staticmethod
    def _filter_attributes(
        attr: Any, tag: str, schema: ContentTypeSchema, report: ErrorReport
    ) -> Optional[Dict[str, Any]]:
        """Filter attributes through the tag's rules; None means drop the owner."""

        if not isinstance(attr, Mapping):
            return {}
        return RuleValidator.filter(attr, schema.attribute_rules_for(tag), report)
