"""Clause coverage projection."""

from .models import ClauseCoverage, FileCoverageSummary
from .projector import CoverageProjector, SourceProvider, read_source_lines

__all__ = [
    "ClauseCoverage",
    "FileCoverageSummary",
    "CoverageProjector",
    "SourceProvider",
    "read_source_lines",
]
