from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from blockify.core.config import BlockifyConfig
from blockify.core.exceptions import InvalidInputFormat
from blockify.core.render.html import HtmlRenderer
from blockify.core.sanitizer import sanitize_json
from blockify.core.schema.registry import SchemaRegistry
from blockify.core.validation.errors import ErrorReport

from .normalizer import TreeNormalizer

log = logging.getLogger("blockify.core")


@dataclass(frozen=True)
class NormalizationResult:
    """Canonical blocks plus the errors recorded while producing them."""

    blocks: List[Dict[str, Any]]
    errors: ErrorReport

    @property
    def is_valid(self) -> bool:
        return self.errors.is_valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blocks": self.blocks,
            "errors": self.errors.to_dict(),
            "valid": self.is_valid,
        }


def parse_input(raw: Any, *, dev: bool = False) -> List[Any]:
    """Sanitize and decode a raw payload into a list of candidate blocks.

    - str/bytes are treated as JSON text; structured values are serialized
      first so both paths go through the same cleaning
    - an unusable payload raises InvalidInputFormat when dev is set, and is
      otherwise an empty document
    - any decoded value other than a non-empty list is an empty document
    """

    sanitized = sanitize_json(raw)
    if sanitized is None:
        if dev:
            raise InvalidInputFormat("Invalid JSON data")
        log.info("unusable payload normalized to an empty document")
        return []

    parsed = json.loads(sanitized)
    if not isinstance(parsed, list) or not parsed:
        return []
    return parsed


def normalize_document(
    raw: Any,
    registry: SchemaRegistry,
    *,
    config: Optional[BlockifyConfig] = None,
) -> NormalizationResult:
    """Run sanitize -> parse -> normalize and return blocks with their errors."""

    cfg = config or BlockifyConfig()
    report = ErrorReport()
    document = parse_input(raw, dev=cfg.dev)
    blocks = TreeNormalizer(registry, cfg).normalize(document, report)
    return NormalizationResult(blocks=blocks, errors=report)


@dataclass(frozen=True)
class BlockPipeline:
    """
    Reusable pipeline bound to a registry and a config.

    Holds no per-run state, so one instance may serve concurrent callers.
    """

    registry: SchemaRegistry
    config: BlockifyConfig = field(default_factory=BlockifyConfig)

    def normalize(self, raw: Any) -> NormalizationResult:
        return normalize_document(raw, self.registry, config=self.config)

    def render(
        self,
        raw: Any,
        *,
        only: Optional[Iterable[str]] = None,
        as_text: bool = False,
    ) -> str:
        """Normalize then render; the renderer never sees unvalidated input."""

        result = self.normalize(raw)
        renderer = HtmlRenderer(self.registry, self.config)
        if only is not None:
            return renderer.render_only(result.blocks, only, as_text=as_text)
        if as_text:
            return renderer.render_as_text(result.blocks)
        return renderer.render(result.blocks)
