"""Testing service.

Runs and discovers Logtalk tests, exposes the test tree and coverage, and
accepts source edit notifications. Returns plain dicts in ServiceResult.
"""

from __future__ import annotations

import logging

from ..core.context import WorkspaceContext
from ..core.coverage import CoverageProjector
from ..core.paths import normalize_path
from ..core.runner import CancellationCheck, DiagnosticsCollector, RunCoordinator
from ..core.tree import InvalidationTracker
from .base import ErrorCode, ServiceResult

logger = logging.getLogger(__name__)


class TestingService:
    """Facade over the coordinator, projector and invalidation tracker of one workspace."""

    __test__ = False

    def __init__(
        self,
        context: WorkspaceContext,
        coordinator: RunCoordinator,
        projector: CoverageProjector,
        tracker: InvalidationTracker,
        diagnostics: DiagnosticsCollector | None = None,
    ):
        self.context = context
        self.coordinator = coordinator
        self.projector = projector
        self.tracker = tracker
        self.diagnostics = diagnostics

    async def run_tests(
        self,
        node_ids: list[str] | None = None,
        include_coverage: bool = False,
        cancelled: CancellationCheck | None = None,
    ) -> ServiceResult[dict]:
        """Run the selected tree nodes (everything when none are given)."""

        # Step 1: Validate selection
        validation_error = self._validate_node_ids(node_ids)
        if validation_error:
            return validation_error

        # Step 2: Run
        try:
            summary = await self.coordinator.run(node_ids, cancelled=cancelled, with_coverage=include_coverage)
        except Exception as e:
            logger.exception("Test run failed")
            return ServiceResult.fail(ErrorCode.EXECUTION_ERROR, f"Test run failed: {e}")

        response = summary.to_dict()
        response["tests"] = self._count_states()
        if self.diagnostics is not None:
            response["failures"] = self.diagnostics.to_dict()
        if include_coverage:
            response["coverage"] = [s.to_dict() for s in self.projector.summaries()]

        # Step 3: Every invocation timed out
        if summary.outcomes and summary.timed_out == len(summary.outcomes):
            return ServiceResult.fail(
                ErrorCode.TIMEOUT_ERROR,
                f"No test run finished within {self.coordinator.timeout:g}s",
                details=response,
            )

        return ServiceResult.ok(response)

    async def discover_tests(self) -> ServiceResult[dict]:
        """Load every results file found in the workspace."""
        try:
            reports = await self.coordinator.discover()
        except Exception as e:
            logger.exception("Test discovery failed")
            return ServiceResult.fail(ErrorCode.INTERNAL_ERROR, f"Test discovery failed: {e}")

        return ServiceResult.ok({
            "results_files": [report.origin for report in reports],
            "changes": [report.to_dict() for report in reports],
            "tests": self._count_states(),
        })

    async def load_tester_reports(self, directory: str | None = None) -> ServiceResult[dict]:
        """Load the xUnit reports the logtalk_tester script left in a directory."""
        directories = None
        if directory:
            path = normalize_path(directory)
            if self.context.workspace_root_for(path) is None:
                return ServiceResult.fail(
                    ErrorCode.OUTSIDE_WORKSPACE,
                    f"{path} is not inside a workspace folder",
                )
            directories = [path]

        try:
            reports = await self.coordinator.load_tester_reports(directories)
        except Exception as e:
            logger.exception("Loading xUnit reports failed")
            return ServiceResult.fail(ErrorCode.INTERNAL_ERROR, f"Loading xUnit reports failed: {e}")

        response = {
            "results_files": [report.origin for report in reports],
            "changes": [report.to_dict() for report in reports],
            "tests": self._count_states(),
        }
        if self.diagnostics is not None:
            response["failures"] = self.diagnostics.to_dict()
        return ServiceResult.ok(response)

    async def clean_results(self) -> ServiceResult[dict]:
        """Delete old results files and start over with an empty tree."""
        try:
            deleted = await self.coordinator.clean_results_files()
        except Exception as e:
            logger.exception("Cleaning results files failed")
            return ServiceResult.fail(ErrorCode.INTERNAL_ERROR, f"Cleaning results files failed: {e}")

        return ServiceResult.ok({"deleted": deleted})

    def get_test_tree(self, node_id: str | None = None) -> ServiceResult[dict]:
        """Snapshot of the whole forest, or of one subtree."""
        if node_id:
            node = self.context.tree.get(node_id)
            if node is None:
                return ServiceResult.fail(ErrorCode.UNKNOWN_NODE, f"Unknown test item: {node_id}")
            return ServiceResult.ok({"tree": [node.to_dict()]})

        return ServiceResult.ok({
            "workspace_roots": list(self.context.workspace_roots),
            "tree": self.context.tree.snapshot(),
        })

    async def get_coverage(self, file_path: str | None = None) -> ServiceResult[dict]:
        """Summary counts for every covered file, or per-clause detail for one."""
        if not file_path:
            return ServiceResult.ok({
                "files": [summary.to_dict() for summary in self.projector.summaries()],
            })

        path = normalize_path(file_path)
        summary = self.projector.summarize(path)
        if summary is None:
            return ServiceResult.fail(ErrorCode.NO_COVERAGE, f"No coverage data for {path}")

        clauses = await self.projector.load_detailed_coverage(path)
        return ServiceResult.ok({
            "summary": summary.to_dict(),
            "clauses": [clause.to_dict() for clause in clauses],
        })

    def notify_edit(self, file_path: str | None, is_dirty: bool = True) -> ServiceResult[dict]:
        """Mark the tests of an edited source file stale."""
        if not file_path or not file_path.strip():
            return ServiceResult.fail(ErrorCode.MISSING_INPUT, "'file_path' is required")

        path = normalize_path(file_path)
        if self.context.workspace_root_for(path) is None:
            return ServiceResult.fail(
                ErrorCode.OUTSIDE_WORKSPACE,
                f"{path} is not inside a workspace folder",
            )

        marked = self.tracker.on_document_changed(path, is_dirty)
        return ServiceResult.ok({"file": path, "stale": marked})

    def _validate_node_ids(self, node_ids: list[str] | None) -> ServiceResult[dict] | None:
        """Validate a selection and return error if invalid."""
        if node_ids is None:
            return None

        if not isinstance(node_ids, list) or not all(isinstance(i, str) for i in node_ids):
            return ServiceResult.fail(ErrorCode.VALIDATION_ERROR, "'node_ids' must be a list of strings")

        unknown = [i for i in node_ids if i not in self.context.tree]
        if node_ids and len(unknown) == len(node_ids):
            return ServiceResult.fail(
                ErrorCode.UNKNOWN_NODE,
                "None of the selected test items exist",
                details={"unknown": unknown},
            )

        return None

    def _count_states(self) -> dict:
        counts: dict[str, int] = {}
        for node in self.context.tree:
            if node.test_name is not None:
                counts[node.run_state.value] = counts.get(node.run_state.value, 0) + 1
        stale = sum(1 for node in self.context.tree if node.test_name is not None and node.stale)
        return {"total": sum(counts.values()), **counts, "stale": stale}
