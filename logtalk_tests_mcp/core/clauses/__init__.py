"""Clause head resolution and clause grouping."""

from .grouper import ConsecutiveClauseGrouper, find_clause_extent
from .indicator import Indicator, parse_indicator, resolve_head, resolve_indicator
from .models import SourceRange

__all__ = [
    "Indicator",
    "parse_indicator",
    "resolve_head",
    "resolve_indicator",
    "ConsecutiveClauseGrouper",
    "find_clause_extent",
    "SourceRange",
]
