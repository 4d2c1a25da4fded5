"""Tree Synchronizer - reconcile the test tree against one result file.

Each pass derives the Workspace > [Directory] > File > Object > Test
chain for every record, creates missing nodes, updates existing ones in
place, and finally prunes nodes that the same result file asserted
before but no longer reports. Nodes asserted by other result files are
never pruned by this pass.
"""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..paths import is_strict_prefix, normalize_path
from ..results.models import ParsedResults, TestResult, TestSummary
from .models import (
    EventKind,
    NodeKind,
    RunState,
    TestTreeNode,
    TreeEvent,
    node_id,
)

if TYPE_CHECKING:
    from ..context import WorkspaceContext

logger = logging.getLogger(__name__)

# Kinds whose run state follows the Queued -> Running -> terminal cycle
RUNNABLE_KINDS = frozenset({NodeKind.FILE, NodeKind.OBJECT, NodeKind.TEST})


@dataclass
class SyncReport:
    """What one reconciliation pass changed."""
    origin: str
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    states: dict[str, RunState] = field(default_factory=dict)
    skipped_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "origin": self.origin,
            "added": len(self.added),
            "updated": len(self.updated),
            "removed": len(self.removed),
            "passed": sum(1 for s in self.states.values() if s is RunState.PASSED),
            "failed": sum(1 for s in self.states.values() if s is RunState.FAILED),
            "skipped": sum(1 for s in self.states.values() if s is RunState.SKIPPED),
        }


def aggregate_state(states: Iterable[RunState]) -> RunState | None:
    """Combine child states: any failure fails, all skipped skips, otherwise passed."""
    terminal = [state for state in states if state.is_terminal]
    if not terminal:
        return None
    if RunState.FAILED in terminal:
        return RunState.FAILED
    if all(state is RunState.SKIPPED for state in terminal):
        return RunState.SKIPPED
    return RunState.PASSED


class TreeSynchronizer:
    """Apply parsed result files to the context's test tree."""

    def __init__(self, context: WorkspaceContext):
        self._context = context
        self._tree = context.tree

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile(
        self,
        results: ParsedResults,
        origin: str,
        apply_states: bool = True,
    ) -> SyncReport:
        """
        Reconcile the tree against the records of one result file.

        Args:
            results: Records parsed from the result file
            origin: Path of the result file
            apply_states: Update run states from statuses (False for discovery)

        Returns:
            SyncReport describing the changes
        """
        origin = normalize_path(origin)
        report = SyncReport(origin=origin)
        events: list[TreeEvent] = []
        expected: set[str] = set()
        touched: set[str] = set()

        results_dir = os.path.dirname(origin)
        origin_root = self._context.workspace_root_for(results_dir)
        if origin_root is not None:
            touched.add(node_id(NodeKind.WORKSPACE, origin_root))

        tests_by_file: dict[str, list[TestResult]] = defaultdict(list)
        for test in results.tests:
            tests_by_file[test.file].append(test)

        summaries_by_file: dict[str, list[TestSummary]] = defaultdict(list)
        for summary in results.summaries:
            summaries_by_file[summary.file].append(summary)

        for path in results.files:
            root = self._context.workspace_root_for(path)
            if root is None:
                logger.warning(f"Skipping {path}: not inside a workspace folder")
                report.skipped_files.append(path)
                continue

            workspace = self._ensure_workspace(root, report, events)
            expected.add(workspace.id)
            touched.add(workspace.id)

            if is_strict_prefix(root, results_dir):
                directory = self._ensure_directory(results_dir, workspace, report, events)
                expected.add(directory.id)

            file_node = self._sync_file(path, workspace, origin, report, events)
            expected.add(file_node.id)
            touched.add(file_node.id)

            self._sync_objects(
                file_node,
                tests_by_file.get(path, []),
                summaries_by_file.get(path, []),
                origin,
                apply_states,
                expected,
                touched,
                report,
                events,
            )

        self._prune(touched, expected, origin, report, events)
        self._drop_empty_directory(results_dir, report, events)

        logger.debug(
            f"Reconciled {origin}: {len(report.added)} added, {len(report.updated)} updated, "
            f"{len(report.removed)} removed"
        )
        self._context.emit(events)
        return report

    def _ensure_workspace(
        self,
        root: str,
        report: SyncReport,
        events: list[TreeEvent],
    ) -> TestTreeNode:
        workspace_id = node_id(NodeKind.WORKSPACE, root)
        node = self._tree.get(workspace_id)
        if node is None:
            node = self._tree.add(TestTreeNode(
                id=workspace_id,
                kind=NodeKind.WORKSPACE,
                label=os.path.basename(root) or root,
                path=root,
            ))
            self._record_added(node, report, events)
        return node

    def _ensure_directory(
        self,
        path: str,
        workspace: TestTreeNode,
        report: SyncReport,
        events: list[TreeEvent],
    ) -> TestTreeNode:
        directory_id = node_id(NodeKind.DIRECTORY, path)
        node = self._tree.get(directory_id)
        if node is None:
            node = self._tree.add(
                TestTreeNode(
                    id=directory_id,
                    kind=NodeKind.DIRECTORY,
                    label=os.path.relpath(path, workspace.path),
                    path=path,
                ),
                parent_id=workspace.id,
            )
            self._record_added(node, report, events)
        return node

    def _file_parent(self, path: str, workspace: TestTreeNode) -> TestTreeNode:
        """Nearest Directory under the workspace whose path is a strict prefix of path."""
        candidates = [
            child for child in workspace.children.values()
            if child.kind is NodeKind.DIRECTORY and is_strict_prefix(child.path, path)
        ]
        return max(candidates, key=lambda d: len(d.path)) if candidates else workspace

    def _sync_file(
        self,
        path: str,
        workspace: TestTreeNode,
        origin: str,
        report: SyncReport,
        events: list[TreeEvent],
    ) -> TestTreeNode:
        parent = self._file_parent(path, workspace)
        label = os.path.relpath(path, parent.path)
        file_id = node_id(NodeKind.FILE, path)
        node = self._tree.get(file_id)

        if node is None:
            node = self._tree.add(
                TestTreeNode(
                    id=file_id,
                    kind=NodeKind.FILE,
                    label=label,
                    path=path,
                    results_origin=origin,
                ),
                parent_id=parent.id,
            )
            self._record_added(node, report, events)
            return node

        changed = node.label != label or node.results_origin != origin
        node.label = label
        node.results_origin = origin
        if node.parent_id != parent.id:
            self._tree.reparent(node.id, parent.id)
            changed = True
        if changed:
            self._record_updated(node, report, events)
        return node

    def _sync_objects(
        self,
        file_node: TestTreeNode,
        tests: list[TestResult],
        summaries: list[TestSummary],
        origin: str,
        apply_states: bool,
        expected: set[str],
        touched: set[str],
        report: SyncReport,
        events: list[TreeEvent],
    ) -> None:
        tests_by_object: dict[str, list[TestResult]] = defaultdict(list)
        for test in tests:
            tests_by_object[test.object].append(test)

        object_summaries = {s.object: s for s in summaries if s.object is not None}
        object_names = list(dict.fromkeys([*tests_by_object, *object_summaries]))
        updated_states = False

        for object_name in object_names:
            summary = object_summaries.get(object_name)
            object_node = self._upsert(
                parent=file_node,
                kind=NodeKind.OBJECT,
                node_key=node_id(NodeKind.OBJECT, file_node.path, object_name),
                label=object_name,
                line=summary.line - 1 if summary else None,
                origin=origin,
                report=report,
                events=events,
                object_name=object_name,
            )
            expected.add(object_node.id)
            touched.add(object_node.id)

            test_states = []
            for test in tests_by_object.get(object_name, []):
                test_node = self._upsert(
                    parent=object_node,
                    kind=NodeKind.TEST,
                    node_key=node_id(NodeKind.TEST, file_node.path, object_name, test.test),
                    label=test.test,
                    line=test.line - 1,
                    origin=origin,
                    report=report,
                    events=events,
                    object_name=object_name,
                    test_name=test.test,
                )
                expected.add(test_node.id)
                test_node.flaky = test.flaky

                if not apply_states:
                    continue

                state = RunState.from_status(test.status)
                if state is None:
                    logger.debug(f"Unknown status {test.status!r} for {test_node.id}")
                    continue
                test_node.message = test.reason if state is RunState.FAILED else None
                self._set_terminal(test_node, state, report, events)
                test_states.append(state)

            if not apply_states:
                continue

            object_state = RunState.from_status(summary.status) if summary else None
            if object_state is None:
                object_state = aggregate_state(test_states)
            if object_state is not None:
                self._set_terminal(object_node, object_state, report, events)
                updated_states = True

        if apply_states and updated_states:
            file_state = aggregate_state(
                child.run_state for child in file_node.children.values()
            )
            if file_state is not None:
                self._set_terminal(file_node, file_state, report, events)

    def _upsert(
        self,
        parent: TestTreeNode,
        kind: NodeKind,
        node_key: str,
        label: str,
        line: int | None,
        origin: str,
        report: SyncReport,
        events: list[TreeEvent],
        **names: str,
    ) -> TestTreeNode:
        """Create an Object/Test node, or update its label, line and origin in place."""
        node = self._tree.get(node_key)

        if node is None:
            node = self._tree.add(
                TestTreeNode(
                    id=node_key,
                    kind=kind,
                    label=label,
                    path=parent.path,
                    line=max(line or 0, 0),
                    results_origin=origin,
                    **names,
                ),
                parent_id=parent.id,
            )
            self._record_added(node, report, events)
            return node

        changed = node.label != label or node.results_origin != origin
        node.label = label
        node.results_origin = origin
        if line is not None and node.line != max(line, 0):
            node.line = max(line, 0)
            changed = True
        if changed:
            self._record_updated(node, report, events)
        return node

    # =========================================================================
    # Pruning
    # =========================================================================

    def _prune(
        self,
        touched: set[str],
        expected: set[str],
        origin: str,
        report: SyncReport,
        events: list[TreeEvent],
    ) -> None:
        """Remove descendants of touched nodes that this origin no longer reports."""
        stale_ids = []
        for touched_id in touched:
            for node in self._tree.descendants(touched_id):
                if node.id not in expected and node.results_origin == origin:
                    stale_ids.append(node.id)

        for stale_id in stale_ids:
            for removed_id in self._tree.remove(stale_id):
                logger.debug(f"Removing stale test item: {removed_id}")
                report.removed.append(removed_id)
                events.append(TreeEvent(EventKind.REMOVED, removed_id))

    def _drop_empty_directory(
        self,
        results_dir: str,
        report: SyncReport,
        events: list[TreeEvent],
    ) -> None:
        directory = self._tree.get(node_id(NodeKind.DIRECTORY, results_dir))
        if directory is not None and directory.kind is NodeKind.DIRECTORY and not directory.children:
            for removed_id in self._tree.remove(directory.id):
                report.removed.append(removed_id)
                events.append(TreeEvent(EventKind.REMOVED, removed_id))

    # =========================================================================
    # Run states
    # =========================================================================

    def _set_terminal(
        self,
        node: TestTreeNode,
        state: RunState,
        report: SyncReport,
        events: list[TreeEvent],
    ) -> None:
        node.run_state = state
        node.stale = False
        report.states[node.id] = state
        events.append(TreeEvent(EventKind.STATE, node.id, state))

    def set_run_state(self, node_ids: Iterable[str], state: RunState) -> dict[str, RunState]:
        """
        Move runnable nodes to a non-terminal state (Queued or Running).

        Returns:
            The states the nodes had before, for restore_run_states
        """
        previous = {}
        events = []
        for node_key in node_ids:
            node = self._tree.get(node_key)
            if node is None or node.kind not in RUNNABLE_KINDS:
                continue
            previous[node.id] = node.run_state
            node.run_state = state
            events.append(TreeEvent(EventKind.STATE, node.id, state))
        self._context.emit(events)
        return previous

    def restore_run_states(self, previous: dict[str, RunState], only_pending: bool = True) -> None:
        """
        Put nodes back into their earlier states.

        With only_pending, nodes that a fresh pass already moved to a
        terminal state keep it.
        """
        events = []
        for node_key, state in previous.items():
            node = self._tree.get(node_key)
            if node is None:
                continue
            if only_pending and node.run_state not in (RunState.QUEUED, RunState.RUNNING):
                continue
            node.run_state = state
            events.append(TreeEvent(EventKind.STATE, node.id, state))
        self._context.emit(events)

    def clear(self) -> list[str]:
        """Remove every node; returns the removed ids."""
        removed = []
        for root in self._tree.roots:
            removed.extend(self._tree.remove(root.id))
        self._context.emit([TreeEvent(EventKind.REMOVED, removed_id) for removed_id in removed])
        return removed

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _record_added(node: TestTreeNode, report: SyncReport, events: list[TreeEvent]) -> None:
        report.added.append(node.id)
        events.append(TreeEvent(EventKind.ADDED, node.id))

    @staticmethod
    def _record_updated(node: TestTreeNode, report: SyncReport, events: list[TreeEvent]) -> None:
        report.updated.append(node.id)
        events.append(TreeEvent(EventKind.UPDATED, node.id))
