from __future__ import annotations

from typing import Any, List, Mapping, Sequence

from blockify.core.schema.model import ContentTypeSchema


def should_merge_text(current: Any, nxt: Any) -> bool:
    return isinstance(current, str) and isinstance(nxt, str)


def should_merge_elements(current: Any, nxt: Any, schema: ContentTypeSchema) -> bool:
    return (
        isinstance(current, Mapping)
        and isinstance(nxt, Mapping)
        and "type" in current
        and current.get("type") == nxt.get("type")
        and not current.get("attr")
        and not nxt.get("attr")
        and not schema.primary_child_types
    )


def merge_similar_items(siblings: Sequence[Any], schema: ContentTypeSchema) -> List[Any]:
    """Consolidate adjacent equivalent siblings in one forward pass.

    - text + text -> "current next" (single space joiner)
    - same-type, attribute-free elements -> one element with both children

    The pass does not cascade: three mergeable siblings yield one merged
    pair followed by the untouched third sibling. Inputs are never mutated.
    """

    items = list(siblings)
    if not schema.merge_similar:
        return items

    result: List[Any] = []
    i = 0
    n = len(items)
    while i < n:
        current = items[i]
        nxt = items[i + 1] if i + 1 < n else None

        if should_merge_text(current, nxt):
            result.append(current + " " + nxt)
            i += 2
        elif should_merge_elements(current, nxt, schema):
            result.append(
                {
                    "type": current["type"],
                    "data": list(current.get("data") or []) + list(nxt.get("data") or []),
                }
            )
            i += 2
        else:
            result.append(current)
            i += 1

    return result
