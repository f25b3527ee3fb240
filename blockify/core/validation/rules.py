from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from blockify.core.exceptions import SchemaConfigurationError

RULE_TYPES = frozenset({"string", "array", "list", "mapping", "integer", "number", "boolean"})

RuleSpec = Union["Rule", str, Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class Rule:
    """Validation spec for one field.

    Checks are evaluated in declaration order of the attributes below:
    required, type, values, url, allowed_protocol, allowed_host, before.
    Every failing check among type..allowed_host is reported; ``before`` runs
    only when all of them passed, so a field that already failed never
    reaches the hook and gets no ``rejected`` error.

    Security invariants
    - Frozen: rules are shared across concurrent pipeline runs
    - Allow-lists are stored as tuples (immutable, ordered for serialization)
    """

    required: bool = False
    type: Optional[str] = None
    values: Optional[Tuple[Any, ...]] = None
    url: bool = False
    allowed_protocol: Optional[Tuple[str, ...]] = None
    allowed_host: Optional[Tuple[str, ...]] = None
    before: Optional[Callable[[Any], Any]] = None

    def __post_init__(self) -> None:
        if self.type is not None and self.type not in RULE_TYPES:
            raise SchemaConfigurationError(f"unknown rule type: {self.type!r}")
        if self.before is not None and not callable(self.before):
            raise SchemaConfigurationError("rule 'before' must be callable")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"required": self.required}
        if self.type is not None:
            out["type"] = self.type
        if self.values is not None:
            out["values"] = list(self.values)
        if self.url:
            out["url"] = True
        if self.allowed_protocol is not None:
            out["allowedProtocol"] = list(self.allowed_protocol)
        if self.allowed_host is not None:
            out["allowedHost"] = list(self.allowed_host)
        if self.before is not None:
            out["before"] = getattr(self.before, "__name__", "callable")
        return out


def _as_tuple(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, str):
        return tuple(v for v in value.split("|") if v != "")
    if isinstance(value, Iterable):
        return tuple(value)
    return (value,)


def _parse_rule_string(spec: str) -> Rule:
    """Parse the compact rule syntax, e.g. ``"required;url;allowedProtocol:https|http"``."""

    fields: Dict[str, Any] = {}
    for token in spec.split(";"):
        token = token.strip()
        if not token:
            continue
        name, sep, arg = token.partition(":")
        name = name.strip()
        arg = arg.strip()
        if name in {"required", "url"} and not sep:
            fields[name] = True
        elif name == "type" and arg:
            fields["type"] = arg
        elif name == "values" and arg:
            fields["values"] = _as_tuple(arg)
        elif name == "allowedProtocol" and arg:
            fields["allowed_protocol"] = _as_tuple(arg)
        elif name == "allowedHost" and arg:
            fields["allowed_host"] = _as_tuple(arg)
        else:
            raise SchemaConfigurationError(f"invalid rule token: {token!r}")
    return Rule(**fields)


_MAPPING_KEYS = {
    "required": "required",
    "type": "type",
    "values": "values",
    "url": "url",
    "allowedProtocol": "allowed_protocol",
    "allowed_protocol": "allowed_protocol",
    "allowedHost": "allowed_host",
    "allowed_host": "allowed_host",
    "before": "before",
}


def _parse_rule_mapping(spec: Mapping[str, Any]) -> Rule:
    fields: Dict[str, Any] = {}
    for key, value in spec.items():
        target = _MAPPING_KEYS.get(key)
        if target is None:
            raise SchemaConfigurationError(f"unknown rule key: {key!r}")
        if target in {"values", "allowed_protocol", "allowed_host"}:
            value = _as_tuple(value)
        elif target in {"required", "url"}:
            value = bool(value)
        fields[target] = value
    return Rule(**fields)


def normalize_rule(spec: RuleSpec) -> Rule:
    """Normalize a rule written as a Rule, a compact string or a mapping."""

    if isinstance(spec, Rule):
        return spec
    if isinstance(spec, str):
        return _parse_rule_string(spec)
    if isinstance(spec, Mapping):
        return _parse_rule_mapping(spec)
    raise SchemaConfigurationError(f"unsupported rule spec: {type(spec).__name__}")


def normalize_rules(specs: Optional[Mapping[str, RuleSpec]]) -> Mapping[str, Rule]:
    """Normalize a RuleSet into a read-only ``field -> Rule`` mapping.

    Field order is preserved; it is the evaluation order of the validator.
    """

    if specs is None:
        return MappingProxyType({})
    if not isinstance(specs, Mapping):
        raise SchemaConfigurationError("rule set must be a mapping")

    out: Dict[str, Rule] = {}
    for name, spec in specs.items():
        if not isinstance(name, str) or not name:
            raise SchemaConfigurationError("rule field names must be non-empty strings")
        out[name] = normalize_rule(spec)
    return MappingProxyType(out)
