"""Filter expression parsing and local matching."""

from src.core.filters.filterexpr import (
    FilterParseError,
    matches_filter,
    parse,
    parse_filter,
    parse_order,
    parse_term,
)

__all__ = [
    "FilterParseError",
    "matches_filter",
    "parse",
    "parse_filter",
    "parse_order",
    "parse_term",
]
