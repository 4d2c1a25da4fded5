"""Data models for clause coverage."""

from dataclasses import dataclass

from ..clauses.models import SourceRange


@dataclass(frozen=True)
class ClauseCoverage:
    """Execution count of one clause, attached to its source range."""
    execution_count: int
    range: SourceRange
    indicator: str
    clause_index: int

    @property
    def covered(self) -> bool:
        return self.execution_count > 0

    def to_dict(self) -> dict:
        return {
            "indicator": self.indicator,
            "clause": self.clause_index,
            "executed": self.execution_count,
            "range": self.range.to_dict(),
        }


@dataclass(frozen=True)
class FileCoverageSummary:
    """
    Summary counts for one file.

    Statements are clauses; declarations are predicates, a predicate being
    covered when at least one of its clauses is.
    """
    path: str
    statements_covered: int
    statements_total: int
    declarations_covered: int
    declarations_total: int

    @property
    def percentage(self) -> float:
        if self.statements_total == 0:
            return 0.0
        return 100.0 * self.statements_covered / self.statements_total

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "clauses": f"{self.statements_covered}/{self.statements_total}",
            "predicates": f"{self.declarations_covered}/{self.declarations_total}",
            "percentage": round(self.percentage, 1),
        }
