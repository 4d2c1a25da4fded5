"""Core domain logic: result parsing, clause resolution, coverage, test tree and runs."""

from .context import WorkspaceContext
from .coverage import ClauseCoverage, CoverageProjector, FileCoverageSummary
from .errors import MissingResultsFile, ParseSkip, ResolutionFailure, RunTimeout, TestSyncError
from .results import CoverageRecord, ParsedResults, TestResult, TestSummary, parse_results, read_results_file
from .runner import DiagnosticsCollector, LogtalkProcessRunner, RunCoordinator
from .tree import InvalidationTracker, NodeKind, RunState, TestTree, TestTreeNode, TreeSynchronizer

__all__ = [
    # Context
    "WorkspaceContext",
    # Results
    "parse_results",
    "read_results_file",
    "ParsedResults",
    "TestResult",
    "TestSummary",
    "CoverageRecord",
    # Coverage
    "CoverageProjector",
    "ClauseCoverage",
    "FileCoverageSummary",
    # Tree
    "TreeSynchronizer",
    "InvalidationTracker",
    "TestTree",
    "TestTreeNode",
    "NodeKind",
    "RunState",
    # Runs
    "RunCoordinator",
    "LogtalkProcessRunner",
    "DiagnosticsCollector",
    # Errors
    "TestSyncError",
    "ParseSkip",
    "ResolutionFailure",
    "RunTimeout",
    "MissingResultsFile",
]
