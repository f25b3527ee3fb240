"""Declarative field validation.

A RuleSet maps field names to Rules; the RuleValidator evaluates it against a
flat mapping and reports failures into an explicit ErrorReport.
"""

from .errors import ErrorReport, ValidationError
from .rules import Rule, normalize_rule, normalize_rules
from .validator import RuleValidator, ValidationResult

__all__ = [
    "ErrorReport",
    "ValidationError",
    "Rule",
    "normalize_rule",
    "normalize_rules",
    "RuleValidator",
    "ValidationResult",
]
