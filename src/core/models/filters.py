"""
Filter and order expressions used by job listings and subscriptions.

A list of FilterExpressions must all match; within one FilterExpression
any single term is enough.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class FilterOp(StrEnum):
    """Comparison applied by a filter term."""

    EQUALS = "equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    CONTAINS = "contains"
    EXISTS = "exists"


@dataclass
class FilterTerm:
    """Single comparison against one job field."""

    field: str
    value: str
    operation: FilterOp = FilterOp.EQUALS
    negate: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "FilterTerm":
        return cls(
            field=d.get("field", ""),
            value=d.get("value", ""),
            operation=FilterOp(d.get("operation", FilterOp.EQUALS)),
            negate=bool(d.get("negate", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "value": self.value,
            "operation": str(self.operation),
            "negate": self.negate,
        }


@dataclass
class FilterExpression:
    """Alternatives: the expression matches if any of its terms matches."""

    terms: list[FilterTerm] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "FilterExpression":
        return cls(terms=[FilterTerm.from_dict(t) for t in d.get("terms", [])])

    def to_dict(self) -> dict[str, Any]:
        return {"terms": [t.to_dict() for t in self.terms]}


@dataclass
class OrderExpression:
    """Sort key for a job listing."""

    field: str
    ascending: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "OrderExpression":
        return cls(field=d.get("field", ""), ascending=bool(d.get("ascending", False)))

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "ascending": self.ascending}
