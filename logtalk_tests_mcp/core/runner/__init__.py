"""Test runner module - dispatches Logtalk test runs and collects their results."""

from .coordinator import RunCoordinator, find_results_files
from .executor import LogtalkProcessRunner
from .markers import marker_path, wait_for_marker
from .models import (
    CancellationCheck,
    DiagnosticsCollector,
    ResultsReporter,
    RunInvocation,
    RunOperation,
    RunOutcome,
    RunStatus,
    RunSummary,
    TestRunner,
)

__all__ = [
    "RunCoordinator",
    "find_results_files",
    "LogtalkProcessRunner",
    "marker_path",
    "wait_for_marker",
    "CancellationCheck",
    "DiagnosticsCollector",
    "ResultsReporter",
    "RunInvocation",
    "RunOperation",
    "RunOutcome",
    "RunStatus",
    "RunSummary",
    "TestRunner",
]
