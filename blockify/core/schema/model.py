from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from blockify.core.exceptions import SchemaConfigurationError
from blockify.core.validation.rules import Rule, RuleSpec, normalize_rules

DEFAULT_ALLOWED_TAGS: frozenset = frozenset({"b", "a", "i", "u", "s", "sub", "sup"})
DEFAULT_SOURCE_PROTOCOLS: Tuple[str, ...] = ("https", "http", "ftp")

DEFAULT_BLOCK_STRUCTURE: Mapping[str, RuleSpec] = {
    "type": "required",
    "data": "type:array;required",
    "attr": "type:array",
}

DEFAULT_TAG_ATTRIBUTE_RULES: Mapping[str, Mapping[str, RuleSpec]] = {
    "a": {
        "href": "required;url;allowedProtocol:https|http|ftp",
        "target": "values:_blank",
    },
}

# (item) -> item | None
CustomItemHook = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]
# (schema, block, context) -> markup
RenderBlockHook = Callable[["ContentTypeSchema", Mapping[str, Any], Any], str]


def _freeze_names(value: Any, what: str) -> frozenset:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise SchemaConfigurationError(f"{what} must be an iterable of strings")
    out = frozenset(value)
    for v in out:
        if not isinstance(v, str) or not v:
            raise SchemaConfigurationError(f"{what} must contain non-empty strings")
    return out


def _freeze_tuple(value: Any, what: str) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise SchemaConfigurationError(f"{what} must be an iterable of strings")
    out = tuple(value)
    for v in out:
        if not isinstance(v, str):
            raise SchemaConfigurationError(f"{what} must contain strings")
    return out


def _freeze_tag_rules(value: Any) -> Mapping[str, Mapping[str, Rule]]:
    if not isinstance(value, Mapping):
        raise SchemaConfigurationError("tag_attribute_rules must be a mapping")
    return MappingProxyType({str(tag): normalize_rules(rules) for tag, rules in value.items()})


@dataclass(frozen=True, eq=False)
class ContentTypeSchema:
    """
    Immutable policy record for one block type.

    The three custom flags select among fixed processing strategies:
    - is_custom_block_structure: filter the block's top-level fields through
      block_structure_rules before processing its data
    - is_custom_item_structure: treat data items as flat records validated by
      item_structure_rules and post-processed by each_custom_item
    - is_custom_render_block: render through the render_block hook

    Security invariants
    - Frozen dataclass with read-only mappings; safe to share across
      concurrent pipeline runs
    - Rules are normalized at construction time (fail closed on bad config)
    """

    name: str
    output_name: str = ""
    allowed_tags: frozenset = DEFAULT_ALLOWED_TAGS
    primary_child_types: frozenset = frozenset()
    block_structure_rules: Mapping[str, Rule] = field(
        default_factory=lambda: DEFAULT_BLOCK_STRUCTURE
    )
    item_structure_rules: Mapping[str, Rule] = field(default_factory=dict)
    tag_attribute_rules: Mapping[str, Mapping[str, Rule]] = field(
        default_factory=lambda: DEFAULT_TAG_ATTRIBUTE_RULES
    )
    merge_similar: bool = True
    escape_text: bool = True
    remove_control_characters: bool = False
    is_custom_block_structure: bool = False
    is_custom_item_structure: bool = False
    is_custom_render_block: bool = False
    is_preformatted: bool = False
    source_protocols: Tuple[str, ...] = DEFAULT_SOURCE_PROTOCOLS
    source_hosts: Tuple[str, ...] = ()
    source_mime_types: Tuple[str, ...] = ()
    source_regex: Tuple[str, ...] = ()
    css_classes: str = ""
    each_custom_item: Optional[CustomItemHook] = None
    render_block: Optional[RenderBlockHook] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise SchemaConfigurationError("schema name must be a non-empty string")
        if not isinstance(self.output_name, str):
            raise SchemaConfigurationError("output_name must be a string")

        object.__setattr__(self, "allowed_tags", _freeze_names(self.allowed_tags, "allowed_tags"))
        object.__setattr__(
            self,
            "primary_child_types",
            _freeze_names(self.primary_child_types, "primary_child_types"),
        )
        object.__setattr__(
            self, "block_structure_rules", normalize_rules(self.block_structure_rules)
        )
        object.__setattr__(self, "item_structure_rules", normalize_rules(self.item_structure_rules))
        object.__setattr__(self, "tag_attribute_rules", _freeze_tag_rules(self.tag_attribute_rules))

        for attr in ("source_protocols", "source_hosts", "source_mime_types", "source_regex"):
            object.__setattr__(self, attr, _freeze_tuple(getattr(self, attr), attr))

        for hook in ("each_custom_item", "render_block"):
            value = getattr(self, hook)
            if value is not None and not callable(value):
                raise SchemaConfigurationError(f"{hook} must be callable")

    def attribute_rules_for(self, tag: str) -> Mapping[str, Rule]:
        return self.tag_attribute_rules.get(tag, MappingProxyType({}))

    def customize_item(self, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.each_custom_item is None:
            return item
        return self.each_custom_item(item)

    def with_changes(self, **changes: Any) -> "ContentTypeSchema":
        """Return a derived schema; the original is left untouched."""

        return replace(self, **changes)

    def summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "output_name": self.output_name,
            "allowed_tags": sorted(self.allowed_tags),
            "primary_child_types": sorted(self.primary_child_types),
            "block_fields": list(self.block_structure_rules.keys()),
            "item_fields": list(self.item_structure_rules.keys()),
            "merge_similar": self.merge_similar,
            "escape_text": self.escape_text,
            "remove_control_characters": self.remove_control_characters,
            "custom_block_structure": self.is_custom_block_structure,
            "custom_item_structure": self.is_custom_item_structure,
            "custom_render_block": self.is_custom_render_block,
            "preformatted": self.is_preformatted,
        }
