from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from .errors import (
    FIELD_REQUIRED,
    INVALID_HOST,
    INVALID_PROTOCOL,
    INVALID_TYPE,
    INVALID_URL,
    INVALID_VALUE,
    REJECTED,
    ErrorReport,
    ValidationError,
)
from .rules import Rule, RuleSpec, normalize_rules

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_UNSAFE_URL_CHARS_RE = re.compile(r"[\x00-\x20\x7f\"'<>\\`]")
# Schemes that are well-formed without a network location.
_HOSTLESS_SCHEMES = frozenset({"mailto", "news", "file", "tel"})


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _check_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "array":
        return isinstance(value, (list, tuple, Mapping))
    if expected == "list":
        return isinstance(value, (list, tuple))
    if expected == "mapping":
        return isinstance(value, Mapping)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    return False


def _split_url(value: Any):
    if not isinstance(value, str) or _UNSAFE_URL_CHARS_RE.search(value):
        return None
    try:
        parts = urlsplit(value)
        # Accessing hostname/port validates bracketed hosts and port ranges.
        _ = parts.hostname, parts.port
    except ValueError:
        return None
    return parts


def _is_well_formed_url(value: Any) -> bool:
    parts = _split_url(value)
    if parts is None or not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in _HOSTLESS_SCHEMES:
        return bool(parts.netloc or parts.path)
    return bool(parts.hostname)


def _protocol_allowed(value: Any, allowed) -> bool:
    parts = _split_url(value)
    if parts is None or not parts.scheme:
        return False
    return parts.scheme.lower() in {str(p).lower() for p in allowed}


def _host_allowed(value: Any, allowed) -> bool:
    parts = _split_url(value)
    if parts is None or not parts.hostname:
        return False
    return parts.hostname.lower() in {str(h).lower() for h in allowed}


def _field_checks(value: Any, rule: Rule) -> List[str]:
    """Return failing check codes for a present value, in evaluation order."""

    codes: List[str] = []
    if rule.type is not None and not _check_type(value, rule.type):
        codes.append(INVALID_TYPE)
    if rule.values is not None and value not in rule.values:
        codes.append(INVALID_VALUE)
    if rule.url and not _is_well_formed_url(value):
        codes.append(INVALID_URL)
    if rule.allowed_protocol is not None and not _protocol_allowed(value, rule.allowed_protocol):
        codes.append(INVALID_PROTOCOL)
    if rule.allowed_host is not None and not _host_allowed(value, rule.allowed_host):
        codes.append(INVALID_HOST)
    return codes


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of applying a RuleSet to one mapping.

    rejected is True when a required-class failure discarded the whole item;
    kept is then empty.
    """

    kept: Dict[str, Any] = field(default_factory=dict)
    errors: List[ValidationError] = field(default_factory=list)
    rejected: bool = False


class RuleValidator:
    """
    Evaluates a declarative RuleSet against a flat field/value mapping.

    Security invariants
    - Unknown keys are never retained (kept is a subset of the rule fields)
    - The first required-class failure discards the whole item
    - Custom ``before`` hooks only ever see values that passed every other check
    """

    @staticmethod
    def apply(
        data: Any,
        rules: Mapping[str, RuleSpec],
        report: Optional[ErrorReport] = None,
    ) -> ValidationResult:
        if not isinstance(data, Mapping):
            # Shape prerequisite, not a declared field: no error recorded.
            return ValidationResult(rejected=True)

        ruleset = normalize_rules(rules)
        verified: Dict[str, Any] = {k: v for k, v in data.items() if k in ruleset}
        recorded: List[ValidationError] = []

        def _record(name: str, code: str, rule: Rule) -> ValidationError:
            err = ValidationError(
                field=name,
                code=code,
                rule=rule,
                item=verified.get(name),
                context=verified,
            )
            recorded.append(err)
            if report is not None:
                report.add(err)
            return err

        for name, rule in ruleset.items():
            present = name in data and not _is_missing(data[name])

            if not present:
                if rule.required:
                    _record(name, FIELD_REQUIRED, rule)
                    return ValidationResult(errors=recorded, rejected=True)
                continue

            value = data[name]
            codes = _field_checks(value, rule)

            if not codes and rule.before is not None:
                result = rule.before(value)
                if result is False or result is None:
                    codes.append(REJECTED)
                else:
                    verified[name] = result

            for code in codes:
                err = _record(name, code, rule)
                if err.is_required_failure:
                    return ValidationResult(errors=recorded, rejected=True)

            if codes:
                verified.pop(name, None)

        return ValidationResult(kept=verified, errors=recorded, rejected=False)

    @classmethod
    def filter(
        cls,
        data: Any,
        rules: Mapping[str, RuleSpec],
        report: Optional[ErrorReport] = None,
    ) -> Optional[Dict[str, Any]]:
        """Return the kept mapping, or None when the whole item is rejected."""

        res = cls.apply(data, rules, report)
        if res.rejected:
            return None
        return res.kept
