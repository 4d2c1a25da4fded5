"""Consecutive Clause Grouper - collect the contiguous clauses of one predicate."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from .models import SourceRange
from .indicator import CLAUSE_END, parse_indicator, resolve_indicator

logger = logging.getLogger(__name__)

# (lines, start_line) -> (start_line, end_line), both 0-based and inclusive
ClauseExtentFinder = Callable[[Sequence[str], int], tuple[int, int]]

ENTITY_BOUNDARIES = (
    ":- object(",
    ":- protocol(",
    ":- category(",
    ":- end_object",
    ":- end_protocol",
    ":- end_category",
)

COMMENT_PREFIXES = ("%", "/*", "*", "*/")


def find_clause_extent(lines: Sequence[str], start_line: int) -> tuple[int, int]:
    """Line range of the clause starting at start_line (ends at the first terminating period)."""
    for line_number in range(start_line, len(lines)):
        if CLAUSE_END.search(lines[line_number]):
            return start_line, line_number
    return start_line, start_line


def _is_entity_boundary(trimmed: str) -> bool:
    return trimmed.startswith(ENTITY_BOUNDARIES)


def _is_skippable(trimmed: str) -> bool:
    return not trimmed or trimmed.startswith(COMMENT_PREFIXES)


class ConsecutiveClauseGrouper:
    """
    Group the consecutive clauses sharing an indicator.

    Starting at the first clause of a definition, walks forward clause by
    clause (using the injected extent finder), resolving each clause's own
    indicator, and stops at the first clause with a different indicator,
    at a directive, or at the end of the enclosing entity. Blank and
    comment lines between clauses are skipped.

    The range at list index i belongs to the clause with 1-based index i + 1.
    """

    def __init__(self, extent_finder: ClauseExtentFinder = find_clause_extent):
        self._extent_finder = extent_finder

    def group(self, lines: Sequence[str], indicator: str, start_line: int) -> list[SourceRange]:
        """
        Collect clause ranges for indicator starting at start_line.

        Args:
            lines: Document lines
            indicator: Predicate or grammar rule indicator of the definition
            start_line: 0-based line of the first clause

        Returns:
            Ordered clause ranges (empty if the first clause does not match)
        """
        if parse_indicator(indicator) is None:
            logger.warning(f"Malformed indicator: {indicator!r}")
            return []

        ranges: list[SourceRange] = []
        line_number = start_line

        while line_number < len(lines):
            trimmed = lines[line_number].strip()

            if trimmed.startswith(":-") or _is_entity_boundary(trimmed):
                break

            if _is_skippable(trimmed):
                line_number += 1
                continue

            if resolve_indicator(lines, line_number) != indicator:
                break

            start, end = self._extent_finder(lines, line_number)
            ranges.append(SourceRange(
                start_line=start,
                start_character=0,
                end_line=end,
                end_character=len(lines[end]),
            ))
            line_number = end + 1

        logger.debug(f"Found {len(ranges)} consecutive clauses for {indicator}")
        return ranges
