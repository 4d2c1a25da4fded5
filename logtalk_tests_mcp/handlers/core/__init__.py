"""Registry for core MCP tool definitions and handlers."""

# Tool definitions and handlers
from .clean_results import (
    TOOL_DEFINITION as CLEAN_RESULTS_TOOL,
    handle as handle_clean_results,
)

from .discover_tests import (
    TOOL_DEFINITION as DISCOVER_TESTS_TOOL,
    handle as handle_discover_tests,
)

from .get_coverage import (
    TOOL_DEFINITION as GET_COVERAGE_TOOL,
    handle as handle_get_coverage,
)

from .get_test_tree import (
    TOOL_DEFINITION as GET_TEST_TREE_TOOL,
    handle as handle_get_test_tree,
)

from .load_tester_reports import (
    TOOL_DEFINITION as LOAD_TESTER_REPORTS_TOOL,
    handle as handle_load_tester_reports,
)

from .notify_edit import (
    TOOL_DEFINITION as NOTIFY_EDIT_TOOL,
    handle as handle_notify_edit,
)

from .run_tests import (
    TOOL_DEFINITION as RUN_TESTS_TOOL,
    handle as handle_run_tests,
)


# All Core tool definitions
TOOLS = [
    RUN_TESTS_TOOL,
    DISCOVER_TESTS_TOOL,
    LOAD_TESTER_REPORTS_TOOL,
    GET_TEST_TREE_TOOL,
    GET_COVERAGE_TOOL,
    NOTIFY_EDIT_TOOL,
    CLEAN_RESULTS_TOOL,
]

# Tool name to handler mapping
HANDLERS = {
    "run_tests": handle_run_tests,
    "discover_tests": handle_discover_tests,
    "load_tester_reports": handle_load_tester_reports,
    "get_test_tree": handle_get_test_tree,
    "get_coverage": handle_get_coverage,
    "notify_edit": handle_notify_edit,
    "clean_results": handle_clean_results,
}


__all__ = [
    # Tool definitions
    "TOOLS",
    "RUN_TESTS_TOOL",
    "DISCOVER_TESTS_TOOL",
    "LOAD_TESTER_REPORTS_TOOL",
    "GET_TEST_TREE_TOOL",
    "GET_COVERAGE_TOOL",
    "NOTIFY_EDIT_TOOL",
    "CLEAN_RESULTS_TOOL",
    # Handlers
    "HANDLERS",
    "handle_run_tests",
    "handle_discover_tests",
    "handle_load_tester_reports",
    "handle_get_test_tree",
    "handle_get_coverage",
    "handle_notify_edit",
    "handle_clean_results",
]
