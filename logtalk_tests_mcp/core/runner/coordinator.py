"""Run Coordinator - turn a run selection into external runs and ingest their results."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from dataclasses import replace

from ...constants import (
    MARKER_POLL_DELAY_SECONDS,
    RESULTS_FILE_NAME,
    RUN_TIMEOUT_SECONDS,
    TESTER_FILE_NAMES,
    TESTS_OPERATION,
    XUNIT_REPORT_NAME,
)
from ..context import WorkspaceContext
from ..coverage import CoverageProjector
from ..errors import MissingResultsFile, RunTimeout
from ..paths import normalize_path
from ..results import ParsedResults, read_results_file, read_xunit_report, write_results_file
from ..tree import NodeKind, RunState, SyncReport, TestTreeNode, TreeSynchronizer
from .markers import marker_path, wait_for_marker
from .models import (
    CancellationCheck,
    ResultsReporter,
    RunInvocation,
    RunOperation,
    RunOutcome,
    RunStatus,
    RunSummary,
    TestRunner,
)

logger = logging.getLogger(__name__)

# Directories never searched for results files
IGNORED_DIRECTORIES = frozenset({".git", ".hg", ".svn", "node_modules", "__pycache__"})


def find_results_files(roots: Sequence[str], file_name: str = RESULTS_FILE_NAME) -> list[str]:
    """All files named file_name (results files by default) below the given roots."""
    found = []
    for root in roots:
        for directory, subdirectories, files in os.walk(root):
            subdirectories[:] = sorted(d for d in subdirectories if d not in IGNORED_DIRECTORIES)
            if file_name in files:
                found.append(normalize_path(os.path.join(directory, file_name)))
    return found


class RunCoordinator:
    """
    Dispatch runs for a selection of tree nodes and reconcile their results.

    Each invocation's marker is awaited in its own task; the parse and
    reconcile step after it is serialized on the context's lock.
    """

    def __init__(
        self,
        context: WorkspaceContext,
        synchronizer: TreeSynchronizer,
        projector: CoverageProjector,
        runner: TestRunner,
        reporter: ResultsReporter | None = None,
        timeout: float = RUN_TIMEOUT_SECONDS,
        poll_delay: float = MARKER_POLL_DELAY_SECONDS,
    ):
        self._context = context
        self._synchronizer = synchronizer
        self._projector = projector
        self._runner = runner
        self._reporter = reporter
        self.timeout = timeout
        self.poll_delay = poll_delay

    # =========================================================================
    # Planning
    # =========================================================================

    def plan(self, node_ids: Sequence[str] | None = None) -> list[RunInvocation]:
        """
        Map a selection to the external invocations that cover it.

        An empty selection means "run everything". Unknown ids are ignored.
        """
        tree = self._context.tree

        if not node_ids:
            if not tree.roots:
                return [RunInvocation(RunOperation.ALL, root) for root in self._context.workspace_roots]
            nodes = sorted(tree.roots, key=lambda r: r.path)
        else:
            nodes = []
            for selected_id in node_ids:
                node = tree.get(selected_id)
                if node is None:
                    logger.warning(f"Ignoring unknown test item: {selected_id}")
                    continue
                nodes.append(node)

        merged: dict[RunInvocation, RunInvocation] = {}
        for node in nodes:
            for invocation in self._invocations_for(node):
                existing = merged.get(invocation)
                if existing is None:
                    merged[invocation] = invocation
                else:
                    node_ids_union = tuple(dict.fromkeys([*existing.node_ids, *invocation.node_ids]))
                    merged[invocation] = replace(existing, node_ids=node_ids_union)

        return list(merged.values())

    def _invocations_for(self, node: TestTreeNode) -> list[RunInvocation]:
        if node.kind is NodeKind.WORKSPACE:
            directories = [c for c in node.children.values() if c.kind is NodeKind.DIRECTORY]
            has_files = any(c.kind is NodeKind.FILE for c in node.children.values())

            invocations = [
                RunInvocation(RunOperation.DIRECTORY, directory.path, node_ids=self._covered_ids(directory))
                for directory in sorted(directories, key=lambda d: d.path)
            ]
            if has_files or not directories:
                file_ids = tuple(
                    covered_id
                    for child in node.children.values()
                    if child.kind is NodeKind.FILE
                    for covered_id in self._covered_ids(child)
                )
                invocations.append(RunInvocation(RunOperation.ALL, node.path, node_ids=file_ids))
            return invocations

        if node.kind is NodeKind.DIRECTORY:
            return [RunInvocation(RunOperation.DIRECTORY, node.path, node_ids=self._covered_ids(node))]
        if node.kind is NodeKind.FILE:
            return [RunInvocation(RunOperation.FILE, node.path, node_ids=self._covered_ids(node))]
        if node.kind is NodeKind.OBJECT:
            return [RunInvocation(
                RunOperation.OBJECT,
                node.path,
                object_name=node.object_name,
                node_ids=self._covered_ids(node),
            )]
        return [RunInvocation(
            RunOperation.TEST,
            node.path,
            object_name=node.object_name,
            test_name=node.test_name,
            node_ids=self._covered_ids(node),
        )]

    def _covered_ids(self, node: TestTreeNode) -> tuple[str, ...]:
        return (node.id, *(d.id for d in self._context.tree.descendants(node.id)))

    # =========================================================================
    # Running
    # =========================================================================

    async def run(
        self,
        node_ids: Sequence[str] | None = None,
        cancelled: CancellationCheck | None = None,
        with_coverage: bool = False,
    ) -> RunSummary:
        """
        Run a selection and reconcile the tree with each run's results.

        Invocations sharing a marker file run one after another; the others
        run concurrently.

        Args:
            node_ids: Selected tree node ids (empty or None runs everything)
            cancelled: Checked before each dispatch; once true, the
                remaining invocations are skipped
            with_coverage: Store the coverage records of the results files

        Returns:
            RunSummary with one outcome per invocation
        """
        invocations = self.plan(node_ids)
        all_ids = list(dict.fromkeys(i for inv in invocations for i in inv.node_ids))
        previous_states = self._synchronizer.set_run_state(all_ids, RunState.QUEUED)

        chains: dict[str, list[int]] = {}
        for index, invocation in enumerate(invocations):
            marker = marker_path(invocation.scope_dir, TESTS_OPERATION)
            chains.setdefault(marker, []).append(index)

        outcomes: list[RunOutcome | None] = [None] * len(invocations)

        async def run_chain(marker: str, indexes: list[int]) -> None:
            for index in indexes:
                invocation = invocations[index]
                previous = {i: previous_states[i] for i in invocation.node_ids if i in previous_states}
                outcomes[index] = await self._run_one(invocation, marker, previous, cancelled, with_coverage)

        await asyncio.gather(*(run_chain(marker, indexes) for marker, indexes in chains.items()))
        return RunSummary(outcomes=[outcome for outcome in outcomes if outcome is not None])

    async def _run_one(
        self,
        invocation: RunInvocation,
        marker: str,
        previous: dict[str, RunState],
        cancelled: CancellationCheck | None,
        with_coverage: bool,
    ) -> RunOutcome:
        if cancelled is not None and cancelled():
            logger.info(f"Run cancelled before dispatching {invocation.describe()}")
            self._synchronizer.restore_run_states(previous)
            return RunOutcome(invocation, RunStatus.CANCELLED)

        self._synchronizer.set_run_state(invocation.node_ids, RunState.RUNNING)

        try:
            if os.path.exists(marker):
                os.remove(marker)
            await self._dispatch(invocation)
        except Exception as e:
            logger.error(f"Failed to start {invocation.describe()}: {e}")
            self._synchronizer.restore_run_states(previous)
            return RunOutcome(invocation, RunStatus.FAILED, error=str(e))

        return await self._complete(invocation, marker, previous, with_coverage)

    async def _dispatch(self, invocation: RunInvocation) -> None:
        logger.info(f"Running tests: {invocation.describe()}")
        operation = invocation.operation

        if operation is RunOperation.ALL:
            await self._runner.run_all(invocation.path)
        elif operation is RunOperation.DIRECTORY:
            await self._runner.run_directory(invocation.path)
        elif operation is RunOperation.FILE:
            await self._runner.run_file(invocation.path)
        elif operation is RunOperation.OBJECT:
            await self._runner.run_object(invocation.path, invocation.object_name)
        else:
            await self._runner.run_test(invocation.path, invocation.object_name, invocation.test_name)

    async def _complete(
        self,
        invocation: RunInvocation,
        marker: str,
        previous: dict[str, RunState],
        with_coverage: bool,
    ) -> RunOutcome:
        """Wait for one run's marker, then ingest its results file."""
        try:
            await wait_for_marker(marker, self.timeout, self.poll_delay)
        except RunTimeout as e:
            logger.warning(f"Abandoning {invocation.describe()}: {e}")
            self._synchronizer.restore_run_states(previous)
            return RunOutcome(invocation, RunStatus.TIMEOUT, error=str(e))
        except asyncio.CancelledError:
            self._synchronizer.restore_run_states(previous)
            raise

        results_file = self.results_file_for(invocation.scope_dir)
        try:
            report = await self.ingest(results_file, with_coverage=with_coverage)
        except Exception as e:
            logger.exception(f"Failed to process results of {invocation.describe()}")
            self._synchronizer.restore_run_states(previous)
            return RunOutcome(invocation, RunStatus.FAILED, results_file=results_file, error=str(e))

        # Nodes the results did not mention go back to their earlier state
        self._synchronizer.restore_run_states(previous)
        return RunOutcome(invocation, RunStatus.COMPLETED, results_file=results_file, report=report)

    # =========================================================================
    # Results
    # =========================================================================

    def tester_dir_for(self, scope_dir: str) -> str:
        """Nearest directory at or above scope_dir holding a tester file, within its workspace."""
        scope_dir = normalize_path(scope_dir)
        root = self._context.workspace_root_for(scope_dir)
        current = scope_dir

        while True:
            if any(os.path.isfile(os.path.join(current, name)) for name in TESTER_FILE_NAMES):
                return current
            parent = os.path.dirname(current)
            if root is None or current == root or parent == current:
                return scope_dir
            current = parent

    def results_file_for(self, scope_dir: str) -> str:
        return os.path.join(self.tester_dir_for(scope_dir), RESULTS_FILE_NAME)

    async def ingest(
        self,
        results_path: str,
        apply_states: bool = True,
        with_coverage: bool = True,
    ) -> SyncReport:
        """
        Parse one results file and reconcile the tree and coverage map with it.

        A missing results file contributes no records and changes nothing.

        Args:
            results_path: Path of the results file
            apply_states: Update run states from the file's statuses
            with_coverage: Replace the coverage map entries of the files the
                coverage records mention
        """
        results_path = normalize_path(results_path)

        async with self._context.reconcile_lock:
            try:
                parsed = read_results_file(results_path)
            except MissingResultsFile as e:
                logger.warning(f"No results to ingest: {e}")
                return SyncReport(origin=results_path)

            report = self._synchronizer.reconcile(parsed, results_path, apply_states=apply_states)
            if with_coverage:
                self._projector.update(parsed.coverage)
            if apply_states:
                self._report_failures(parsed)
            return report

    async def discover(self) -> list[SyncReport]:
        """Reconcile every results file in the workspace without touching run states."""
        reports = []
        for results_path in find_results_files(self._context.workspace_roots):
            logger.info(f"Loading test results from {results_path}")
            try:
                reports.append(await self.ingest(results_path, apply_states=False))
            except Exception:
                logger.exception(f"Failed to load test results from {results_path}")
        return reports

    # =========================================================================
    # Project testers
    # =========================================================================

    async def ingest_xunit(self, report_path: str) -> SyncReport:
        """
        Reconcile the tree with one xUnit report from the logtalk_tester script.

        The report's test results are written to the results file next to
        it, which then becomes their origin.

        Raises:
            InvalidReport: If the report is not well-formed XML
        """
        report_path = normalize_path(report_path)
        results_path = os.path.join(os.path.dirname(report_path), RESULTS_FILE_NAME)

        try:
            parsed = read_xunit_report(report_path)
        except MissingResultsFile as e:
            logger.warning(f"No report to ingest: {e}")
            return SyncReport(origin=results_path)

        if not parsed.tests:
            logger.debug(f"No test results in {report_path}")
            return SyncReport(origin=results_path)

        write_results_file(results_path, parsed.tests)
        return await self.ingest(results_path, with_coverage=False)

    async def load_tester_reports(self, directories: Sequence[str] | None = None) -> list[SyncReport]:
        """Ingest every xUnit report below the directories (default: the workspace roots)."""
        roots = [normalize_path(d) for d in directories] if directories else self._context.workspace_roots
        reports = []
        for report_path in find_results_files(roots, XUNIT_REPORT_NAME):
            logger.info(f"Loading xUnit report {report_path}")
            try:
                reports.append(await self.ingest_xunit(report_path))
            except Exception:
                logger.exception(f"Failed to load xUnit report {report_path}")
        return reports

    async def clean_results_files(self) -> list[str]:
        """
        Delete every results file in the workspace and empty the tree.

        Returns:
            The deleted results file paths
        """
        deleted = []
        async with self._context.reconcile_lock:
            for results_path in find_results_files(self._context.workspace_roots):
                try:
                    os.remove(results_path)
                except OSError as e:
                    logger.error(f"Error deleting test results file {results_path}: {e}")
                    continue
                logger.debug(f"Deleted old test results file: {results_path}")
                deleted.append(results_path)

            self._synchronizer.clear()
            self._projector.clear()
        return deleted

    def _report_failures(self, parsed: ParsedResults) -> None:
        if self._reporter is None:
            return

        for file in dict.fromkeys(test.file for test in parsed.tests):
            self._reporter.clear(file)
        for test in parsed.tests:
            if test.status.lower().startswith("failed"):
                self._reporter.report(test)
