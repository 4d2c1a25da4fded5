"""Result file parsing."""

from .models import CoverageRecord, ParsedResults, ResultRecord, TestResult, TestSummary
from .parser import format_test_line, parse_line, parse_results, read_results_file, write_results_file
from .xunit import parse_xunit_report, read_xunit_report

__all__ = [
    "TestResult",
    "TestSummary",
    "CoverageRecord",
    "ResultRecord",
    "ParsedResults",
    "parse_line",
    "parse_results",
    "read_results_file",
    "format_test_line",
    "write_results_file",
    "parse_xunit_report",
    "read_xunit_report",
]
