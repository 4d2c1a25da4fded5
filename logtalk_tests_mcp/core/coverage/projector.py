"""Coverage Projector - map per-predicate clause counters onto source ranges."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from ..clauses import ConsecutiveClauseGrouper, resolve_indicator
from ..context import WorkspaceContext
from ..errors import ResolutionFailure
from ..paths import normalize_path
from ..results.models import CoverageRecord
from .models import ClauseCoverage, FileCoverageSummary

logger = logging.getLogger(__name__)

# path -> document lines
SourceProvider = Callable[[str], Sequence[str]]


def read_source_lines(path: str) -> list[str]:
    """Default source provider: the file's lines, read as UTF-8."""
    return Path(path).read_text(encoding="utf-8").splitlines()


class CoverageProjector:
    """
    Keep the coverage map current and project it onto clauses on demand.

    Detailed coverage is computed lazily for one file at a time since it
    needs that file's full source text.
    """

    def __init__(
        self,
        context: WorkspaceContext,
        source_provider: SourceProvider = read_source_lines,
        grouper: ConsecutiveClauseGrouper | None = None,
    ):
        self._context = context
        self._source_provider = source_provider
        self._grouper = grouper or ConsecutiveClauseGrouper()

    # =========================================================================
    # Coverage map
    # =========================================================================

    def update(self, records: Iterable[CoverageRecord]) -> list[str]:
        """
        Replace the coverage map entry of every file the records mention.

        Returns:
            The updated file paths
        """
        by_file: dict[str, list[CoverageRecord]] = defaultdict(list)
        for record in records:
            by_file[normalize_path(record.file)].append(record)

        for path, file_records in by_file.items():
            self._context.coverage[path] = file_records
            logger.debug(f"Stored {len(file_records)} coverage records for {path}")

        return list(by_file)

    def clear(self) -> None:
        self._context.coverage.clear()

    def summarize(self, path: str) -> FileCoverageSummary | None:
        """Clause and predicate counts for one file (None without coverage data)."""
        path = normalize_path(path)
        records = self._context.coverage.get(path)
        if records is None:
            return None

        static = [record for record in records if not record.is_dynamic]
        return FileCoverageSummary(
            path=path,
            statements_covered=sum(record.covered for record in static),
            statements_total=sum(record.total for record in static),
            declarations_covered=sum(1 for record in static if record.covered > 0),
            declarations_total=len(static),
        )

    def summaries(self) -> list[FileCoverageSummary]:
        return [self.summarize(path) for path in sorted(self._context.coverage)]

    # =========================================================================
    # Detailed coverage
    # =========================================================================

    async def load_detailed_coverage(self, path: str) -> list[ClauseCoverage]:
        """
        Per-clause coverage for one file.

        Returns an empty list when the file has no coverage data or its
        source cannot be read.
        """
        path = normalize_path(path)
        records = self._context.coverage.get(path)
        if not records:
            logger.debug(f"No coverage data for {path}")
            return []

        try:
            lines = await asyncio.to_thread(self._source_provider, path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {path} for detailed coverage: {e}")
            return []

        return self.project(lines, records)

    def project(self, lines: Sequence[str], records: Iterable[CoverageRecord]) -> list[ClauseCoverage]:
        """Project coverage records onto the clauses of a document."""
        items: list[ClauseCoverage] = []

        for record in records:
            if record.is_dynamic:
                logger.debug(f"Skipping line {record.line}: dynamic predicate without clauses")
                continue

            try:
                items.extend(self._project_record(lines, record))
            except ResolutionFailure as e:
                logger.warning(f"Skipping coverage record: {e}")

        logger.debug(f"Projected {len(items)} clause coverage items")
        return items

    def _project_record(self, lines: Sequence[str], record: CoverageRecord) -> list[ClauseCoverage]:
        line_number = record.line - 1
        if line_number < 0 or line_number >= len(lines):
            raise ResolutionFailure(record.file, record.line, "line outside the document")

        indicator = resolve_indicator(lines, line_number)
        if indicator is None:
            raise ResolutionFailure(
                record.file,
                record.line,
                f"cannot resolve clause head {lines[line_number].strip()!r}",
            )

        ranges = self._grouper.group(lines, indicator, line_number)
        covered = set(record.covered_indexes)

        return [
            ClauseCoverage(
                execution_count=1 if clause_index in covered else 0,
                range=clause_range,
                indicator=indicator,
                clause_index=clause_index,
            )
            for clause_index, clause_range in enumerate(ranges, start=1)
        ]
