"""
Shared constants used across the project.
"""

from typing import Final

# Result file written by the test runner next to the tester file
RESULTS_FILE_NAME: Final[str] = ".vscode_test_results"

# xUnit report written by the logtalk_tester script in each suite directory
XUNIT_REPORT_NAME: Final[str] = "xunit_report.xml"

# Marker files: "<scratch>/.{operation}_done"
MARKER_TEMPLATE: Final[str] = ".{operation}_done"
TESTS_OPERATION: Final[str] = "vscode_loading"

# Tester files that anchor a suite directory
TESTER_FILE_NAMES: Final[tuple[str, ...]] = ("tester.lgt", "tester.logtalk")

# Test execution
RUN_TIMEOUT_SECONDS: Final[float] = 480.0
MARKER_POLL_DELAY_SECONDS: Final[float] = 0.2

# Logtalk backend integration script used by the process runner
DEFAULT_BACKEND: Final[str] = "swilgt"

# Status text emitted by the runner
FLAKY_TAG: Final[str] = "[flaky]"
