"""
Tests for run coordination.

Covers:
- Mapping a selection to external invocations
- Dispatch, marker wait and ingestion of results files
- Timeouts, cancellation and dispatch failures
- xUnit reports of the logtalk_tester script and results file cleanup
- The process runner's goals
"""

import os
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from logtalk_tests_mcp.core.context import WorkspaceContext
from logtalk_tests_mcp.core.coverage import CoverageProjector
from logtalk_tests_mcp.core.errors import RunTimeout
from logtalk_tests_mcp.core.results import ParsedResults, TestResult
from logtalk_tests_mcp.core.runner import (
    DiagnosticsCollector,
    LogtalkProcessRunner,
    RunCoordinator,
    RunInvocation,
    RunOperation,
    RunStatus,
    find_results_files,
    marker_path,
    wait_for_marker,
)
from logtalk_tests_mcp.core.runner.executor import quote_atom
from logtalk_tests_mcp.core.tree import EventKind, NodeKind, RunState, TreeSynchronizer, node_id

MARKER = ".vscode_loading_done"
RESULTS = ".vscode_test_results"


class FakeRunner:
    """Writes canned results and the marker file, like a finished Logtalk run."""

    def __init__(self, results=None, write_marker=True):
        # scope directory -> results file content
        self.results = results or {}
        self.write_marker = write_marker
        self.calls = []

    async def run_all(self, scope):
        self._finish(("all", scope), scope)

    async def run_directory(self, directory):
        self._finish(("directory", directory), directory)

    async def run_file(self, file):
        self._finish(("file", file), os.path.dirname(file))

    async def run_object(self, file, object_name):
        self._finish(("object", file, object_name), os.path.dirname(file))

    async def run_test(self, file, object_name, test_name):
        self._finish(("test", file, object_name, test_name), os.path.dirname(file))

    def _finish(self, call, scope):
        self.calls.append(call)
        content = self.results.get(scope)
        if content is not None:
            Path(scope, RESULTS).write_text(content, encoding="utf-8")
        if self.write_marker:
            Path(scope, MARKER).write_text("", encoding="utf-8")


def result_line(file, obj, test, status="passed", line=10):
    return f"File:{file};Line:{line};Object:{obj};Test:{test};Status:{status}\n"


def make_coordinator(context, runner, reporter=None, timeout=2.0):
    return RunCoordinator(
        context,
        TreeSynchronizer(context),
        CoverageProjector(context, source_provider=Mock(return_value=[])),
        runner,
        reporter=reporter,
        timeout=timeout,
        poll_delay=0.01,
    )


@pytest.fixture
def workspace(tmp_path):
    """Workspace with one suite directory holding a tester and a tests file."""
    root = tmp_path / "ws"
    suite = root / "suite"
    suite.mkdir(parents=True)
    (suite / "tester.lgt").write_text(":- initialization(true).\n")
    (suite / "tests.lgt").write_text(":- object(tests).\n:- end_object.\n")
    return root


# =============================================================================
# Planning
# =============================================================================

class TestPlan:
    """Tests for mapping a selection to invocations."""

    @pytest.fixture
    def coordinator(self):
        context = WorkspaceContext(["/w"])
        sync = TreeSynchronizer(context)
        results = [
            ("/w/a/.vscode_test_results", "/w/a/t.lgt", "obj"),
            ("/w/b/.vscode_test_results", "/w/b/u.lgt", "other"),
            ("/w/.vscode_test_results", "/w/top.lgt", "top"),
        ]
        for origin, file, obj in results:
            sync.reconcile(
                ParsedResults(tests=[TestResult(file=file, line=10, object=obj, test="t1", status="passed")]),
                origin,
            )
        return make_coordinator(context, FakeRunner())

    def test_empty_tree_runs_everything(self):
        """With no tree, each workspace root gets one ALL run."""
        coordinator = make_coordinator(WorkspaceContext(["/w", "/v"]), FakeRunner())

        invocations = coordinator.plan()

        assert invocations == [RunInvocation(RunOperation.ALL, "/v"), RunInvocation(RunOperation.ALL, "/w")]

    def test_workspace_runs_directories_and_top_level_files(self, coordinator):
        """A workspace maps to one run per directory plus one for its own files."""
        invocations = coordinator.plan()

        assert [(i.operation, i.path) for i in invocations] == [
            (RunOperation.DIRECTORY, "/w/a"),
            (RunOperation.DIRECTORY, "/w/b"),
            (RunOperation.ALL, "/w"),
        ]
        assert node_id(NodeKind.TEST, "/w/top.lgt", "top", "t1") in invocations[2].node_ids
        assert node_id(NodeKind.TEST, "/w/a/t.lgt", "obj", "t1") not in invocations[2].node_ids

    def test_node_kinds(self, coordinator):
        """Each runnable kind maps to its own operation."""
        selection = [
            node_id(NodeKind.DIRECTORY, "/w/a"),
            node_id(NodeKind.FILE, "/w/b/u.lgt"),
            node_id(NodeKind.OBJECT, "/w/top.lgt", "top"),
            node_id(NodeKind.TEST, "/w/a/t.lgt", "obj", "t1"),
        ]

        invocations = coordinator.plan(selection)

        assert invocations == [
            RunInvocation(RunOperation.DIRECTORY, "/w/a"),
            RunInvocation(RunOperation.FILE, "/w/b/u.lgt"),
            RunInvocation(RunOperation.OBJECT, "/w/top.lgt", object_name="top"),
            RunInvocation(RunOperation.TEST, "/w/a/t.lgt", object_name="obj", test_name="t1"),
        ]

    def test_duplicates_collapse(self, coordinator):
        """Identical invocations are merged and keep every covered node."""
        directory_id = node_id(NodeKind.DIRECTORY, "/w/a")
        workspace_id = node_id(NodeKind.WORKSPACE, "/w")

        invocations = coordinator.plan([directory_id, workspace_id, directory_id])

        assert len(invocations) == 3
        assert directory_id in invocations[0].node_ids

    def test_unknown_ids_ignored(self, coordinator):
        assert coordinator.plan(["file:///nope.lgt"]) == []

    def test_scope_dir(self):
        assert RunInvocation(RunOperation.DIRECTORY, "/w/a").scope_dir == "/w/a"
        assert RunInvocation(RunOperation.TEST, "/w/a/t.lgt", "obj", "t1").scope_dir == "/w/a"


# =============================================================================
# Running
# =============================================================================

class TestRun:
    """End-to-end runs with a fake runner."""

    @pytest.mark.asyncio
    async def test_scenario_a(self, tmp_path):
        """An empty tree runs everything and builds File > Object > Test."""
        root = tmp_path / "p"
        root.mkdir()
        (root / "tester.lgt").write_text("")
        tests_file = str(root / "t.lgt")
        context = WorkspaceContext([str(root)])
        runner = FakeRunner({str(root): result_line(tests_file, "obj", "t1")})

        summary = await make_coordinator(context, runner).run()

        assert summary.completed == 1
        assert runner.calls == [("all", str(root))]
        test_node = context.tree.get(node_id(NodeKind.TEST, tests_file, "obj", "t1"))
        assert test_node.run_state == RunState.PASSED
        assert test_node.line == 9
        assert not (root / MARKER).exists()

    @pytest.mark.asyncio
    async def test_run_single_test(self, workspace):
        """Running one test dispatches a test run and updates only that test."""
        suite = str(workspace / "suite")
        tests_file = os.path.join(suite, "tests.lgt")
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner({suite: result_line(tests_file, "tests", "t1", status="failed")})
        coordinator = make_coordinator(context, runner)
        Path(suite, RESULTS).write_text(result_line(tests_file, "tests", "t1") + result_line(tests_file, "tests", "t2"))
        await coordinator.ingest(os.path.join(suite, RESULTS))

        t1 = node_id(NodeKind.TEST, tests_file, "tests", "t1")
        summary = await coordinator.run([t1])

        assert runner.calls[-1] == ("test", tests_file, "tests", "t1")
        assert summary.completed == 1
        assert context.tree.get(t1).run_state == RunState.FAILED

    @pytest.mark.asyncio
    async def test_scenario_d_timeout_keeps_tree(self, workspace):
        """A run whose marker never appears leaves the tree unchanged."""
        suite = str(workspace / "suite")
        tests_file = os.path.join(suite, "tests.lgt")
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner({suite: result_line(tests_file, "tests", "t1", status="failed")}, write_marker=False)
        coordinator = make_coordinator(context, runner, timeout=0.05)
        Path(suite, RESULTS).write_text(result_line(tests_file, "tests", "t1"))
        await coordinator.ingest(os.path.join(suite, RESULTS))
        before = context.tree.snapshot()

        summary = await coordinator.run([node_id(NodeKind.DIRECTORY, suite)])

        assert summary.timed_out == 1
        assert summary.outcomes[0].status is RunStatus.TIMEOUT
        assert context.tree.snapshot() == before

    @pytest.mark.asyncio
    async def test_cancelled_before_dispatch(self, workspace):
        """A cancelled request dispatches nothing and restores states."""
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner()

        summary = await make_coordinator(context, runner).run(cancelled=lambda: True)

        assert summary.cancelled == 1
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_dispatch_failure(self, workspace):
        """A runner that cannot start fails only its own invocation."""
        context = WorkspaceContext([str(workspace)])
        runner = Mock()
        runner.run_all = AsyncMock(side_effect=RuntimeError("backend missing"))

        summary = await make_coordinator(context, runner).run()

        assert summary.failed == 1
        assert summary.outcomes[0].error == "backend missing"

    @pytest.mark.asyncio
    async def test_missing_results_file(self, workspace):
        """A finished run without a results file changes nothing."""
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner()

        summary = await make_coordinator(context, runner).run()

        assert summary.completed == 1
        assert len(context.tree) == 0

    @pytest.mark.asyncio
    async def test_sibling_directories_isolated(self, workspace):
        """Rerunning one suite never prunes another suite's tests."""
        other = workspace / "other"
        other.mkdir()
        (other / "tester.lgt").write_text("")
        suite = str(workspace / "suite")
        suite_tests = os.path.join(suite, "tests.lgt")
        other_tests = str(other / "tests.lgt")
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner()
        coordinator = make_coordinator(context, runner)

        Path(suite, RESULTS).write_text(result_line(suite_tests, "tests", "t1"))
        Path(other, RESULTS).write_text(result_line(other_tests, "more", "m1"))
        await coordinator.discover()

        runner.results[suite] = result_line(suite_tests, "tests", "t2")
        summary = await coordinator.run([node_id(NodeKind.DIRECTORY, suite)])

        assert summary.completed == 1
        assert node_id(NodeKind.TEST, other_tests, "more", "m1") in context.tree
        assert node_id(NodeKind.TEST, suite_tests, "tests", "t2") in context.tree
        assert node_id(NodeKind.TEST, suite_tests, "tests", "t1") not in context.tree

    @pytest.mark.asyncio
    async def test_states_return_after_run(self, workspace):
        """Nodes the results did not mention go back to their earlier state."""
        suite = str(workspace / "suite")
        tests_file = os.path.join(suite, "tests.lgt")
        results = Path(suite, RESULTS)
        context = WorkspaceContext([str(workspace)])
        coordinator = make_coordinator(context, FakeRunner())
        results.write_text(result_line(tests_file, "tests", "t1"))
        await coordinator.ingest(str(results))
        results.unlink()

        summary = await coordinator.run()

        assert summary.completed == 1
        assert context.tree.get(node_id(NodeKind.TEST, tests_file, "tests", "t1")).run_state == RunState.PASSED

    @pytest.mark.asyncio
    async def test_reconcile_passes_never_overlap(self, workspace):
        """Directory runs finishing together are reconciled one at a time, under the lock."""
        other = workspace / "other"
        other.mkdir()
        (other / "tester.lgt").write_text("")
        suite = str(workspace / "suite")
        suite_tests = os.path.join(suite, "tests.lgt")
        other_tests = str(other / "tests.lgt")
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner()
        coordinator = make_coordinator(context, runner)
        Path(suite, RESULTS).write_text(result_line(suite_tests, "tests", "t1"))
        Path(other, RESULTS).write_text(result_line(other_tests, "more", "m1"))
        await coordinator.discover()

        runner.results = {
            suite: result_line(suite_tests, "tests", "t1", status="failed"),
            str(other): result_line(other_tests, "more", "m1"),
        }
        calls = []
        reconcile = coordinator._synchronizer.reconcile

        def recording_reconcile(parsed, origin, apply_states=True):
            calls.append(("enter", origin, context.reconcile_lock.locked()))
            try:
                return reconcile(parsed, origin, apply_states=apply_states)
            finally:
                calls.append(("exit", origin, context.reconcile_lock.locked()))

        with patch.object(coordinator._synchronizer, "reconcile", side_effect=recording_reconcile):
            summary = await coordinator.run([
                node_id(NodeKind.DIRECTORY, suite),
                node_id(NodeKind.DIRECTORY, str(other)),
            ])

        assert summary.completed == 2
        assert [kind for kind, _, _ in calls] == ["enter", "exit", "enter", "exit"]
        assert calls[0][1] == calls[1][1]
        assert calls[2][1] == calls[3][1]
        assert {calls[0][1], calls[2][1]} == {os.path.join(suite, RESULTS), str(other / RESULTS)}
        assert all(locked for _, _, locked in calls)

    @pytest.mark.asyncio
    async def test_coverage_stored_only_when_requested(self, workspace):
        """Coverage records of a run reach the coverage map only with coverage on."""
        source = str(workspace / "suite" / "tests.lgt")
        coverage_line = f"File:{source};Line:2;Status:Tests clause coverage: 1/2 - [1]\n"
        context = WorkspaceContext([str(workspace)])
        runner = FakeRunner({str(workspace): result_line(source, "tests", "t1") + coverage_line})
        coordinator = make_coordinator(context, runner)

        await coordinator.run()
        assert context.coverage == {}

        await coordinator.run(with_coverage=True)
        assert context.coverage[source][0].covered == 1


# =============================================================================
# Results Files
# =============================================================================

class TestResultsFiles:
    """Tests for locating and ingesting results files."""

    def test_tester_dir_walks_up(self, workspace):
        """The results file lives next to the nearest tester."""
        nested = workspace / "suite" / "nested"
        nested.mkdir()
        coordinator = make_coordinator(WorkspaceContext([str(workspace)]), FakeRunner())

        assert coordinator.tester_dir_for(str(nested)) == str(workspace / "suite")
        assert coordinator.results_file_for(str(nested)) == str(workspace / "suite" / RESULTS)

    def test_tester_dir_defaults_to_scope(self, workspace):
        coordinator = make_coordinator(WorkspaceContext([str(workspace)]), FakeRunner())

        assert coordinator.tester_dir_for(str(workspace)) == str(workspace)

    def test_find_results_files_skips_ignored(self, workspace):
        (workspace / "suite" / RESULTS).write_text("")
        (workspace / ".git").mkdir()
        (workspace / ".git" / RESULTS).write_text("")

        assert find_results_files([str(workspace)]) == [str(workspace / "suite" / RESULTS)]

    @pytest.mark.asyncio
    async def test_discover_does_not_apply_states(self, workspace):
        """Discovery builds the tree with every node NotRun."""
        suite = workspace / "suite"
        (suite / RESULTS).write_text(result_line(str(suite / "tests.lgt"), "tests", "t1", status="failed"))
        context = WorkspaceContext([str(workspace)])

        reports = await make_coordinator(context, FakeRunner()).discover()

        assert len(reports) == 1
        assert node_id(NodeKind.TEST, str(suite / "tests.lgt"), "tests", "t1") in context.tree
        assert all(node.run_state == RunState.NOT_RUN for node in context.tree)

    @pytest.mark.asyncio
    async def test_ingest_coverage(self, workspace):
        suite = workspace / "suite"
        source = str(suite / "tests.lgt")
        (suite / RESULTS).write_text(f"File:{source};Line:2;Status:Tests clause coverage: 1/2 - [1]\n")
        context = WorkspaceContext([str(workspace)])

        await make_coordinator(context, FakeRunner()).ingest(str(suite / RESULTS))

        assert context.coverage[source][0].covered == 1

    @pytest.mark.asyncio
    async def test_failures_reported(self, workspace):
        """Failed tests reach the reporter; a later pass replaces them."""
        suite = workspace / "suite"
        source = str(suite / "tests.lgt")
        results = suite / RESULTS
        collector = DiagnosticsCollector()
        coordinator = make_coordinator(WorkspaceContext([str(workspace)]), FakeRunner(), reporter=collector)

        results.write_text(result_line(source, "tests", "t1", status="failed") + result_line(source, "tests", "t2"))
        await coordinator.ingest(str(results))
        assert [d.test for d in collector.diagnostics(source)] == ["t1"]

        results.write_text(result_line(source, "tests", "t1") + result_line(source, "tests", "t2"))
        await coordinator.ingest(str(results))
        assert collector.diagnostics(source) == []

    @pytest.mark.asyncio
    async def test_discover_keeps_valid_lines_of_undecodable_file(self, tmp_path):
        """A line that is not UTF-8 costs only that line, never other files."""
        root = tmp_path / "ws"
        a = root / "a"
        b = root / "b"
        a.mkdir(parents=True)
        b.mkdir()
        a_tests = str(a / "t.lgt")
        (a / RESULTS).write_bytes(
            f"File:{a_tests};Line:10;Object:obj;Test:caf".encode("utf-8") + b"\xff;Status:passed\n"
            + result_line(a_tests, "obj", "t2").encode("utf-8")
        )
        (b / RESULTS).write_text(result_line(str(b / "u.lgt"), "other", "u1"))
        context = WorkspaceContext([str(root)])

        reports = await make_coordinator(context, FakeRunner()).discover()

        assert len(reports) == 2
        assert node_id(NodeKind.TEST, a_tests, "obj", "t2") in context.tree
        assert node_id(NodeKind.TEST, str(b / "u.lgt"), "other", "u1") in context.tree

    @pytest.mark.asyncio
    async def test_discover_continues_after_failing_file(self, tmp_path, caplog):
        """An error loading one results file does not stop discovery."""
        root = tmp_path / "ws"
        a = root / "a"
        b = root / "b"
        a.mkdir(parents=True)
        b.mkdir()
        (a / RESULTS).write_text(result_line(str(a / "t.lgt"), "obj", "t1"))
        (b / RESULTS).write_text(result_line(str(b / "u.lgt"), "other", "u1"))
        context = WorkspaceContext([str(root)])
        coordinator = make_coordinator(context, FakeRunner())
        reconcile = coordinator._synchronizer.reconcile

        def failing_for_a(parsed, origin, apply_states=True):
            if origin == str(a / RESULTS):
                raise RuntimeError("corrupt tree")
            return reconcile(parsed, origin, apply_states=apply_states)

        with patch.object(coordinator._synchronizer, "reconcile", side_effect=failing_for_a):
            reports = await coordinator.discover()

        assert [report.origin for report in reports] == [str(b / RESULTS)]
        assert node_id(NodeKind.TEST, str(b / "u.lgt"), "other", "u1") in context.tree
        assert str(a / RESULTS) in caplog.text

    @pytest.mark.asyncio
    async def test_clean_results_files(self, workspace):
        """Cleaning deletes every results file and empties the tree and coverage."""
        suite = workspace / "suite"
        source = str(suite / "tests.lgt")
        (suite / RESULTS).write_text(
            result_line(source, "tests", "t1")
            + f"File:{source};Line:2;Status:Tests clause coverage: 1/2 - [1]\n"
        )
        context = WorkspaceContext([str(workspace)])
        removed = []
        context.subscribe(lambda event: removed.append(event.node_id) if event.kind is EventKind.REMOVED else None)
        coordinator = make_coordinator(context, FakeRunner())
        await coordinator.discover()

        deleted = await coordinator.clean_results_files()

        assert deleted == [str(suite / RESULTS)]
        assert not (suite / RESULTS).exists()
        assert len(context.tree) == 0
        assert context.coverage == {}
        assert node_id(NodeKind.TEST, source, "tests", "t1") in removed
        assert await coordinator.discover() == []


# =============================================================================
# Project Testers
# =============================================================================

def xunit_report(file, *cases):
    """xUnit report with one testcase of object tests per (name, extra element)."""
    body = "".join(
        f'<testcase classname="tests" name="{name}" time="0.001"><properties>'
        f'<property name="file" value="{file}"/>'
        f'<property name="position" value="{line}-{line + 1}"/>'
        f'</properties>{extra}</testcase>'
        for line, (name, extra) in enumerate(cases, start=10)
    )
    return f'<?xml version="1.0" encoding="UTF-8"?><testsuites><testsuite name="tests">{body}</testsuite></testsuites>'


class TestTesterReports:
    """Tests for loading xUnit reports of the logtalk_tester script."""

    @pytest.mark.asyncio
    async def test_load_reports(self, workspace):
        """Report testcases become tests with their states and failure messages."""
        suite = workspace / "suite"
        source = str(suite / "tests.lgt")
        (suite / "xunit_report.xml").write_text(xunit_report(
            source,
            ("t1", ""),
            ("t2", '<failure message="boom"/>'),
            ("t3", "<skipped/>"),
        ))
        context = WorkspaceContext([str(workspace)])
        collector = DiagnosticsCollector()

        reports = await make_coordinator(context, FakeRunner(), reporter=collector).load_tester_reports()

        assert [report.origin for report in reports] == [str(suite / RESULTS)]
        assert (suite / RESULTS).exists()
        states = {
            test: context.tree.get(node_id(NodeKind.TEST, source, "tests", test)).run_state
            for test in ("t1", "t2", "t3")
        }
        assert states == {"t1": RunState.PASSED, "t2": RunState.FAILED, "t3": RunState.SKIPPED}
        assert context.tree.get(node_id(NodeKind.TEST, source, "tests", "t2")).message == "boom"
        assert context.tree.get(node_id(NodeKind.TEST, source, "tests", "t1")).line == 9
        assert [d.test for d in collector.diagnostics(source)] == ["t2"]

    @pytest.mark.asyncio
    async def test_report_replaces_earlier_results(self, workspace):
        """A newer report prunes tests the same suite no longer reports."""
        suite = workspace / "suite"
        source = str(suite / "tests.lgt")
        report = suite / "xunit_report.xml"
        context = WorkspaceContext([str(workspace)])
        coordinator = make_coordinator(context, FakeRunner())

        report.write_text(xunit_report(source, ("t1", ""), ("t2", "")))
        await coordinator.load_tester_reports()
        report.write_text(xunit_report(source, ("t1", "")))
        await coordinator.load_tester_reports()

        assert node_id(NodeKind.TEST, source, "tests", "t1") in context.tree
        assert node_id(NodeKind.TEST, source, "tests", "t2") not in context.tree

    @pytest.mark.asyncio
    async def test_malformed_report_is_isolated(self, workspace):
        """A broken report changes nothing and other reports still load."""
        suite = workspace / "suite"
        other = workspace / "other"
        other.mkdir()
        other_tests = str(other / "tests.lgt")
        (suite / "xunit_report.xml").write_text("<testsuites><testcase")
        (other / "xunit_report.xml").write_text(xunit_report(other_tests, ("m1", "")))
        context = WorkspaceContext([str(workspace)])

        reports = await make_coordinator(context, FakeRunner()).load_tester_reports()

        assert [report.origin for report in reports] == [str(other / RESULTS)]
        assert not (suite / RESULTS).exists()
        assert node_id(NodeKind.TEST, other_tests, "tests", "m1") in context.tree

    @pytest.mark.asyncio
    async def test_empty_report_keeps_tree(self, workspace):
        """A report without testcases neither writes results nor prunes."""
        suite = workspace / "suite"
        source = str(suite / "tests.lgt")
        context = WorkspaceContext([str(workspace)])
        coordinator = make_coordinator(context, FakeRunner())
        (suite / RESULTS).write_text(result_line(source, "tests", "t1"))
        await coordinator.discover()
        (suite / "xunit_report.xml").write_text(xunit_report(source))

        reports = await coordinator.load_tester_reports()

        assert reports[0].added == []
        assert reports[0].removed == []
        assert node_id(NodeKind.TEST, source, "tests", "t1") in context.tree
        assert (suite / RESULTS).read_text() == result_line(source, "tests", "t1")

    @pytest.mark.asyncio
    async def test_load_from_one_directory(self, workspace):
        """Only reports below the given directory are loaded."""
        suite = workspace / "suite"
        other = workspace / "other"
        other.mkdir()
        (suite / "xunit_report.xml").write_text(xunit_report(str(suite / "tests.lgt"), ("t1", "")))
        (other / "xunit_report.xml").write_text(xunit_report(str(other / "tests.lgt"), ("m1", "")))
        context = WorkspaceContext([str(workspace)])

        reports = await make_coordinator(context, FakeRunner()).load_tester_reports([str(other)])

        assert [report.origin for report in reports] == [str(other / RESULTS)]
        assert node_id(NodeKind.TEST, str(suite / "tests.lgt"), "tests", "t1") not in context.tree


# =============================================================================
# Marker Files
# =============================================================================

class TestMarkers:
    """Tests for the marker file protocol."""

    def test_marker_path(self):
        assert marker_path("/w/a", "vscode_loading") == "/w/a/.vscode_loading_done"

    @pytest.mark.asyncio
    async def test_existing_marker_is_consumed(self, tmp_path):
        marker = tmp_path / MARKER
        marker.write_text("")

        await wait_for_marker(str(marker), timeout=1.0, poll_delay=0.01)

        assert not marker.exists()

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path):
        with pytest.raises(RunTimeout):
            await wait_for_marker(str(tmp_path / MARKER), timeout=0.05, poll_delay=0.01)


# =============================================================================
# Process Runner
# =============================================================================

class TestLogtalkProcessRunner:
    """Tests for the backend process runner."""

    def test_quote_atom(self):
        assert quote_atom("/w/it's") == "'/w/it\\'s'"

    def test_build_goal_without_home(self):
        runner = LogtalkProcessRunner("swilgt")

        assert runner.build_goal("true") == "true, halt"

    def test_build_goal_loads_support_object(self):
        runner = LogtalkProcessRunner("swilgt", logtalk_home="/opt/logtalk", logtalk_user="/home/u/logtalk")

        assert runner.build_goal("true") == (
            "logtalk_load('/opt/logtalk/coding/vscode/vscode.lgt', "
            "[scratch_directory('/home/u/logtalk/scratch/')]), true, halt"
        )

    @pytest.mark.asyncio
    async def test_run_file(self):
        """A file run starts the backend in the file's directory."""
        runner = LogtalkProcessRunner("swilgt")

        with patch("asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            await runner.run_file("/w/a/tests.lgt")

        args = spawn.call_args.args
        assert args[:2] == ("swilgt", "-g")
        assert args[2] == "vscode::tests_file('/w/a','/w/a/tests.lgt'), halt"
        assert spawn.call_args.kwargs["cwd"] == "/w/a"

    @pytest.mark.asyncio
    async def test_run_directory(self):
        runner = LogtalkProcessRunner("swilgt")

        with patch("asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            await runner.run_directory("/w/a")

        assert spawn.call_args.args[2] == "vscode::tests('/w/a','/w/a/tester'), halt"

    @pytest.mark.asyncio
    async def test_run_test(self):
        runner = LogtalkProcessRunner("swilgt")

        with patch("asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            await runner.run_test("/w/a/tests.lgt", "tests", "t1")

        assert spawn.call_args.args[2] == "vscode::test('/w/a',tests, t1), halt"

    @pytest.mark.asyncio
    async def test_missing_backend(self):
        runner = LogtalkProcessRunner("no-such-lgt")

        with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError())):
            with pytest.raises(RuntimeError, match="no-such-lgt"):
                await runner.run_all("/w")
