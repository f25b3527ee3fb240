from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Mapping


def to_jsonable(obj: Any) -> Any:
    """
    Convert pipeline values (results, reports, rules, schemas) to plain JSON.

    Security considerations:
    - callables (rule hooks, schema hooks) are reduced to their name; they
      are never invoked.
    - objects exposing ``to_dict`` are trusted to return JSON-like values.

    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict) and not isinstance(obj, type):
        return to_jsonable(to_dict())

    if callable(obj):
        return getattr(obj, "__name__", type(obj).__name__)

    # dataclasses: shallow walk so frozen mappings and hooks go through the
    # branches below instead of being deep-copied by asdict
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    # sets are sorted for stable output
    if isinstance(obj, (set, frozenset)):
        return sorted((to_jsonable(x) for x in obj), key=str)

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]

    return str(obj)
