"""
Filter expressions.

Parses human-written search terms of the form "<field><op><value>" into
filter terms and evaluates filters against job summaries locally.

Operators:
    ==   equals
    ~=   contains
    |=   starts with
    =|   ends with

Each operator can be negated by prefixing it with "!", e.g. "owner!==webui".
"""

import logging
from collections.abc import Iterable

from src.core.models import (
    FilterExpression,
    FilterOp,
    FilterTerm,
    JobPhase,
    JobSummary,
    OrderExpression,
)

logger = logging.getLogger(__name__)

OPERATORS: dict[str, FilterOp] = {
    "==": FilterOp.EQUALS,
    "~=": FilterOp.CONTAINS,
    "|=": FilterOp.STARTS_WITH,
    "=|": FilterOp.ENDS_WITH,
}


class FilterParseError(ValueError):
    """A filter or order expression could not be parsed."""

    pass


def _find_operator(expr: str) -> tuple[str, FilterOp, bool] | None:
    """Return (token, operation, negate) of the operator used in expr."""
    for token, op in OPERATORS.items():
        if "!" + token in expr:
            return "!" + token, op, True
    for token, op in OPERATORS.items():
        if token in expr:
            return token, op, False
    return None


def parse_term(expr: str) -> FilterTerm:
    """
    Parse a single search term.

    Args:
        expr: Term such as "phase==running" or "repo.repo|=werft".

    Returns:
        The parsed filter term.

    Raises:
        FilterParseError: If the operator is missing or a phase is invalid.
    """
    found = _find_operator(expr)
    if found is None:
        raise FilterParseError("missing operator")

    token, op, negate = found
    field, value = (part.strip() for part in expr.split(token, 1))

    if field == "success":
        value = "1" if value == "true" else "0"

    if field == "phase":
        try:
            JobPhase(value.lower())
        except ValueError:
            raise FilterParseError(f"invalid phase: {value}") from None

    return FilterTerm(field=field, value=value, operation=op, negate=negate)


def parse(exprs: Iterable[str]) -> list[FilterTerm]:
    """Parse a list of search terms."""
    return [parse_term(expr) for expr in exprs]


def parse_filter(exprs: Iterable[str]) -> list[FilterExpression]:
    """
    Parse search terms into a filter where every term must match.

    Each term becomes its own expression, since terms inside one
    expression are alternatives.
    """
    return [FilterExpression(terms=[term]) for term in parse(exprs)]


def parse_order(exprs: Iterable[str]) -> list[OrderExpression]:
    """
    Parse order expressions of the form "field:asc" or "field:desc".

    Raises:
        FilterParseError: If an expression is not "field:direction".
    """
    result = []
    for expr in exprs:
        segments = expr.split(":")
        if len(segments) != 2:
            raise FilterParseError(f"invalid order expression: {expr}")
        result.append(OrderExpression(field=segments[0], ascending=segments[1] == "asc"))
    return result


def _field_index(job: JobSummary) -> dict[str, str]:
    index = {
        "name": job.name,
        "phase": str(job.phase),
        "owner": job.owner,
        "trigger": str(job.trigger),
        "success": "1" if job.conditions.success else "0",
        "repo.owner": job.repository.owner,
        "repo.repo": job.repository.repo,
        "repo.host": job.repository.host,
        "repo.ref": job.repository.ref,
        "repo.rev": job.repository.revision,
    }
    for key, value in job.annotations.items():
        index[f"annotation.{key}"] = value
    return index


def _term_matches(term: FilterTerm, value: str) -> bool:
    if term.operation == FilterOp.CONTAINS:
        matched = term.value in value
    elif term.operation == FilterOp.ENDS_WITH:
        matched = value.endswith(term.value)
    elif term.operation == FilterOp.STARTS_WITH:
        matched = value.startswith(term.value)
    elif term.operation == FilterOp.EXISTS:
        matched = True
    else:
        matched = value == term.value

    return not matched if term.negate else matched


def matches_filter(job: JobSummary | None, filter: list[FilterExpression]) -> bool:
    """
    Check whether a job satisfies a filter.

    Every expression must match; an expression matches if any of its
    terms does. Terms on fields the job does not have are skipped.
    """
    if not filter:
        return True
    if job is None:
        return False

    index = _field_index(job)
    for expression in filter:
        matched = False
        for term in expression.terms:
            if term.field not in index:
                continue
            if _term_matches(term, index[term.field]):
                matched = True
                break
        if not matched:
            return False

    return True
