"""Built-in block schemas.

Paragraphs, headings, lists and code use the default node processing;
files and galleries are custom structures whose items are flat records
describing an external resource.
"""

from __future__ import annotations

import html
import re
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from .model import DEFAULT_SOURCE_PROTOCOLS, ContentTypeSchema
from .registry import SchemaRegistry

FILE_MIME_TYPES = (
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/webm",
    "video/ogg",
    "video/mpeg",
    "video/quicktime",
    "video/x-msvideo",
)

GALLERY_IMAGE_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp")
GALLERY_VIDEO_TYPES = ("video/mp4", "video/webm", "video/ogg")
GALLERY_STYLES = ("grid", "slider", "single")


def paragraph_schema() -> ContentTypeSchema:
    return ContentTypeSchema(name="p", output_name="p", remove_control_characters=True)


def header_schema(level: int = 1) -> ContentTypeSchema:
    if not isinstance(level, int) or not 1 <= level <= 6:
        raise ValueError("header level must be between 1 and 6")
    tag = f"h{level}"
    return ContentTypeSchema(name=tag, output_name=tag, allowed_tags={"a", "sub", "sup"})


def ordered_list_schema() -> ContentTypeSchema:
    return ContentTypeSchema(
        name="ol",
        output_name="ol",
        primary_child_types={"li"},
        remove_control_characters=True,
    )


def unordered_list_schema() -> ContentTypeSchema:
    return ContentTypeSchema(name="ul", output_name="ul", primary_child_types={"li"})


def code_schema() -> ContentTypeSchema:
    return ContentTypeSchema(name="code", output_name="code", allowed_tags=(), is_preformatted=True)


def source_regex_check(patterns: Sequence[str]) -> Callable[[Any], Any]:
    """Build a ``before`` predicate accepting values matching any pattern."""

    compiled = [re.compile(p) for p in patterns]

    def matches_source_regex(value: Any) -> Any:
        if not isinstance(value, str):
            return False
        for rx in compiled:
            if rx.search(value):
                return value
        return False

    return matches_source_regex


def build_source_url_rule(
    *,
    protocols: Iterable[str],
    hosts: Iterable[str],
    regex: Iterable[str],
    required: bool = True,
) -> Dict[str, Any]:
    """Rule for a field holding the URL of an external resource."""

    protocols = tuple(protocols)
    hosts = tuple(hosts)
    regex = tuple(regex)

    rule: Dict[str, Any] = {"required": required, "type": "string", "url": True}
    if protocols:
        rule["allowedProtocol"] = protocols
    if hosts:
        rule["allowedHost"] = hosts
    if regex:
        rule["before"] = source_regex_check(regex)
    return rule


def _clean_text_field(item: Dict[str, Any], name: str) -> None:
    if name not in item:
        return
    value = item[name]
    text = value.strip() if isinstance(value, str) else ""
    if text:
        item[name] = html.escape(text, quote=True)
    else:
        del item[name]


def clean_file_item(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Trim and escape caption/desc; drop them when empty."""

    out = dict(item)
    _clean_text_field(out, "caption")
    _clean_text_field(out, "desc")
    return out


def files_schema(
    *,
    name: str = "files",
    source_protocols: Iterable[str] = DEFAULT_SOURCE_PROTOCOLS,
    source_hosts: Iterable[str] = (),
    source_regex: Iterable[str] = (),
    source_mime_types: Iterable[str] = FILE_MIME_TYPES,
) -> ContentTypeSchema:
    source_protocols = tuple(source_protocols)
    source_hosts = tuple(source_hosts)
    source_regex = tuple(source_regex)
    source_mime_types = tuple(source_mime_types)

    return ContentTypeSchema(
        name=name,
        output_name="div",
        allowed_tags=(),
        block_structure_rules={
            "type": {"type": "string", "values": (name,), "required": True},
            "data": "type:array;required",
        },
        item_structure_rules={
            "url": build_source_url_rule(
                protocols=source_protocols, hosts=source_hosts, regex=source_regex
            ),
            "type": {"required": True, "values": source_mime_types},
            "size": "type:integer",
            "caption": "type:string",
            "desc": "type:string",
        },
        merge_similar=False,
        is_custom_block_structure=True,
        is_custom_item_structure=True,
        is_custom_render_block=True,
        source_protocols=source_protocols,
        source_hosts=source_hosts,
        source_mime_types=source_mime_types,
        source_regex=source_regex,
        each_custom_item=clean_file_item,
    )


def gallery_schema(
    *,
    name: str = "gallery",
    source_protocols: Iterable[str] = DEFAULT_SOURCE_PROTOCOLS,
    source_hosts: Iterable[str] = (),
    source_regex: Iterable[str] = (),
    image_types: Iterable[str] = GALLERY_IMAGE_TYPES,
    video_types: Iterable[str] = GALLERY_VIDEO_TYPES,
) -> ContentTypeSchema:
    base = files_schema(
        name=name,
        source_protocols=source_protocols,
        source_hosts=source_hosts,
        source_regex=source_regex,
        source_mime_types=tuple(image_types) + tuple(video_types),
    )

    block_rules = dict(base.block_structure_rules)
    block_rules["style"] = {"type": "string", "values": GALLERY_STYLES}

    item_rules = dict(base.item_structure_rules)
    item_rules["thumbnail"] = build_source_url_rule(
        protocols=base.source_protocols, hosts=base.source_hosts, regex=(), required=False
    )

    return base.with_changes(block_structure_rules=block_rules, item_structure_rules=item_rules)


def builtin_schemas() -> list:
    schemas = [paragraph_schema()]
    schemas.extend(header_schema(level) for level in range(1, 7))
    schemas.extend(
        [
            ordered_list_schema(),
            unordered_list_schema(),
            code_schema(),
            files_schema(),
            gallery_schema(),
        ]
    )
    return schemas


def default_registry() -> SchemaRegistry:
    """Registry populated with every built-in schema."""

    return SchemaRegistry(builtin_schemas())
