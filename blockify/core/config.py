from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

log = logging.getLogger("blockify.core")

DEFAULT_MAX_DEPTH = 32


def _freeze_names_map(value: Any) -> Mapping[str, str]:
    """Keep a substitution table only if it is a str -> str mapping."""

    if not isinstance(value, Mapping):
        return MappingProxyType({})
    out: Dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not isinstance(v, str):
            log.warning("ignoring non-string render name substitution table")
            return MappingProxyType({})
        out[k] = v
    return MappingProxyType(out)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Security notes:
    - Env vars are treated as trusted server configuration.

    """

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def parse_names_map(raw: str) -> Dict[str, str]:
    """Parse ``"b=strong,i=em"`` into a substitution table."""

    out: Dict[str, str] = {}
    for entry in (raw or "").split(","):
        key, sep, value = entry.partition("=")
        key, value = key.strip(), value.strip()
        if sep and key and value:
            out[key] = value
    return out


@dataclass(frozen=True, slots=True)
class BlockifyConfig:
    """Pipeline and renderer configuration.

    - dev: raise InvalidInputFormat on transport failures instead of
      returning an empty document
    - render_tag_names / render_block_names: output tag substitutions,
      e.g. {"b": "strong"} or {"code": "pre"}
    - max_depth: deepest element nesting kept; deeper nodes are dropped

    """

    dev: bool = False
    block_css_prefix: str = "blockify"
    render_tag_names: Mapping[str, str] = field(default_factory=dict)
    render_block_names: Mapping[str, str] = field(default_factory=dict)
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "render_tag_names", _freeze_names_map(self.render_tag_names))
        object.__setattr__(self, "render_block_names", _freeze_names_map(self.render_block_names))
        if not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ValueError("max_depth must be a positive integer")

    @staticmethod
    def from_env() -> "BlockifyConfig":
        """Create a config from environment variables.

        - BLOCKIFY_DEV (default 0)
        - BLOCKIFY_CSS_PREFIX (default "blockify")
        - BLOCKIFY_RENDER_TAG_NAMES, BLOCKIFY_RENDER_BLOCK_NAMES ("b=strong,i=em")
        - BLOCKIFY_MAX_DEPTH (default 32)

        """

        max_depth = env_int("BLOCKIFY_MAX_DEPTH", DEFAULT_MAX_DEPTH)
        if max_depth < 1:
            max_depth = DEFAULT_MAX_DEPTH

        return BlockifyConfig(
            dev=_env_bool("BLOCKIFY_DEV", False),
            block_css_prefix=os.environ.get("BLOCKIFY_CSS_PREFIX", "").strip() or "blockify",
            render_tag_names=parse_names_map(os.environ.get("BLOCKIFY_RENDER_TAG_NAMES", "")),
            render_block_names=parse_names_map(os.environ.get("BLOCKIFY_RENDER_BLOCK_NAMES", "")),
            max_depth=max_depth,
        )
