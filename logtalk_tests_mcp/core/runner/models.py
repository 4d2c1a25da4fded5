"""Data models and collaborator interfaces for test runs."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..results.models import TestResult
from ..tree.synchronizer import SyncReport

# Returns True once the caller has asked to cancel the request
CancellationCheck = Callable[[], bool]


class RunOperation(str, Enum):
    """Granularity of one external run invocation."""
    ALL = "all"
    DIRECTORY = "directory"
    FILE = "file"
    OBJECT = "object"
    TEST = "test"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RunInvocation:
    """
    One external run.

    Invocations compare equal on their target alone, so duplicates within
    a request collapse; node_ids lists the tree nodes the run covers.
    """
    operation: RunOperation
    path: str
    object_name: str | None = None
    test_name: str | None = None
    node_ids: tuple[str, ...] = field(default=(), compare=False)

    @property
    def scope_dir(self) -> str:
        """Directory the run is scoped to (and where its marker file appears)."""
        if self.operation in (RunOperation.ALL, RunOperation.DIRECTORY):
            return self.path
        return os.path.dirname(self.path)

    def describe(self) -> str:
        parts = [self.operation.value, self.path]
        if self.object_name:
            parts.append(self.object_name)
        if self.test_name:
            parts.append(self.test_name)
        return " ".join(parts)


@dataclass
class RunOutcome:
    """Result of one invocation."""
    invocation: RunInvocation
    status: RunStatus
    results_file: str | None = None
    report: SyncReport | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result = {
            "operation": self.invocation.operation.value,
            "target": self.invocation.describe(),
            "status": self.status.value,
        }
        if self.results_file:
            result["results_file"] = self.results_file
        if self.report:
            result["changes"] = self.report.to_dict()
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class RunSummary:
    """All outcomes of one run request."""
    outcomes: list[RunOutcome] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is RunStatus.COMPLETED)

    @property
    def timed_out(self) -> int:
        return sum(1 for o in self.outcomes if o.status is RunStatus.TIMEOUT)

    @property
    def cancelled(self) -> int:
        return sum(1 for o in self.outcomes if o.status is RunStatus.CANCELLED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is RunStatus.FAILED)

    def to_dict(self) -> dict:
        return {
            "invocations": len(self.outcomes),
            "completed": self.completed,
            "timed_out": self.timed_out,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "runs": [outcome.to_dict() for outcome in self.outcomes],
        }


# =============================================================================
# Collaborators
# =============================================================================

class TestRunner(Protocol):
    """
    External test runner.

    Each call starts a run and returns without waiting for it; completion
    is signalled through the marker file.
    """

    __test__ = False

    async def run_all(self, scope: str) -> None: ...

    async def run_directory(self, directory: str) -> None: ...

    async def run_file(self, file: str) -> None: ...

    async def run_object(self, file: str, object_name: str) -> None: ...

    async def run_test(self, file: str, object_name: str, test_name: str) -> None: ...


class ResultsReporter(Protocol):
    """Receives failed test results so they can be shown as diagnostics."""

    def clear(self, marker: str) -> None: ...

    def report(self, record: TestResult) -> None: ...


class DiagnosticsCollector:
    """ResultsReporter keeping failed test results per source file."""

    def __init__(self):
        self._by_file: dict[str, list[TestResult]] = {}

    def clear(self, marker: str) -> None:
        """Drop the diagnostics of one file."""
        self._by_file.pop(marker, None)

    def report(self, record: TestResult) -> None:
        self._by_file.setdefault(record.file, []).append(record)

    def diagnostics(self, file: str | None = None) -> list[TestResult]:
        if file is not None:
            return list(self._by_file.get(file, []))
        return [record for records in self._by_file.values() for record in records]

    def to_dict(self) -> dict:
        return {
            file: [
                {
                    "line": record.line,
                    "object": record.object,
                    "test": record.test,
                    "status": record.status,
                    "reason": record.reason,
                }
                for record in records
            ]
            for file, records in sorted(self._by_file.items())
        }
