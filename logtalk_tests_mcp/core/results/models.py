"""Data models for result file records."""

from dataclasses import dataclass, field

from ...constants import FLAKY_TAG


@dataclass(frozen=True)
class TestResult:
    """Outcome of a single test."""

    __test__ = False

    file: str
    line: int
    object: str
    test: str
    status: str
    reason: str | None = None

    @property
    def flaky(self) -> bool:
        return FLAKY_TAG in self.status.lower()


@dataclass(frozen=True)
class TestSummary:
    """Summary line for a test object (object is None for the file-level shape)."""

    __test__ = False

    file: str
    line: int
    object: str | None
    status: str


@dataclass(frozen=True)
class CoverageRecord:
    """Per-predicate clause coverage counters."""
    file: str
    line: int
    covered: int
    total: int
    covered_indexes: tuple[int, ...] = ()

    @property
    def is_dynamic(self) -> bool:
        """Dynamic predicates report no static clauses and carry no detail."""
        return self.total == 0


ResultRecord = TestResult | TestSummary | CoverageRecord


@dataclass
class ParsedResults:
    """All records extracted from one result file."""
    tests: list[TestResult] = field(default_factory=list)
    summaries: list[TestSummary] = field(default_factory=list)
    coverage: list[CoverageRecord] = field(default_factory=list)
    skipped_lines: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.tests or self.summaries or self.coverage)

    @property
    def files(self) -> list[str]:
        """Source files mentioned by test and summary records, in first-seen order."""
        seen: dict[str, None] = {}
        for record in [*self.tests, *self.summaries]:
            seen.setdefault(record.file, None)
        return list(seen)

    def records(self) -> list[ResultRecord]:
        return [*self.tests, *self.summaries, *self.coverage]
