from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from .rules import Rule

FIELD_REQUIRED = "field_required"
INVALID_TYPE = "invalid_type"
INVALID_VALUE = "invalid_value"
INVALID_URL = "invalid_url"
INVALID_PROTOCOL = "invalid_protocol"
INVALID_HOST = "invalid_host"
REJECTED = "rejected"

_MESSAGES = {
    FIELD_REQUIRED: "Field is required",
    INVALID_TYPE: "Value has the wrong type",
    INVALID_VALUE: "Value is not one of the allowed values",
    INVALID_URL: "Value is not a well-formed URL",
    INVALID_PROTOCOL: "URL protocol is not allowed",
    INVALID_HOST: "URL host is not allowed",
    REJECTED: "Value was rejected by a custom check",
}


@dataclass(frozen=True)
class ValidationError:
    """
    Immutable record of one failed field check.

    context holds a snapshot of the verified mapping the field belonged to.
    """

    field: str
    code: str
    rule: Rule
    item: Any = None
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    @property
    def message(self) -> str:
        return _MESSAGES.get(self.code, self.code)

    @property
    def is_required_failure(self) -> bool:
        return self.code == FIELD_REQUIRED or self.rule.required

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "code": self.code,
            "message": self.message,
            "rule": self.rule.to_dict(),
            "item": self.item,
            "context": dict(self.context),
        }


class ErrorReport:
    """Per-call error sink keyed by field name.

    A report is created for one pipeline run and returned with its result;
    it is never shared between runs.
    """

    def __init__(self) -> None:
        self._errors: Dict[str, List[ValidationError]] = {}

    def add(self, error: ValidationError) -> None:
        self._errors.setdefault(error.field, []).append(error)

    def extend(self, errors: List[ValidationError]) -> None:
        for e in errors:
            self.add(e)

    @property
    def is_valid(self) -> bool:
        return not self._errors

    def get(self, name: str) -> List[ValidationError]:
        return list(self._errors.get(name, []))

    def fields(self) -> List[str]:
        return list(self._errors.keys())

    def items(self) -> Iterator[Tuple[str, List[ValidationError]]]:
        for name, errs in self._errors.items():
            yield name, list(errs)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [e.to_dict() for e in errs] for name, errs in self._errors.items()}

    def __len__(self) -> int:
        return sum(len(v) for v in self._errors.values())

    def __contains__(self, name: object) -> bool:
        return name in self._errors

    def __repr__(self) -> str:
        return f"ErrorReport(fields={self.fields()!r}, count={len(self)})"
