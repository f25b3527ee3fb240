"""Block tree normalization.

Turns untrusted block documents into canonical trees: sanitize, parse,
validate against the registered schemas, merge similar siblings.
"""

from .merge import merge_similar_items, should_merge_elements, should_merge_text
from .normalizer import TreeNormalizer
from .pipeline import BlockPipeline, NormalizationResult, normalize_document, parse_input

__all__ = [
    "merge_similar_items",
    "should_merge_elements",
    "should_merge_text",
    "TreeNormalizer",
    "BlockPipeline",
    "NormalizationResult",
    "normalize_document",
    "parse_input",
]
