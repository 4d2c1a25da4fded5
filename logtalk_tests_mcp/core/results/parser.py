"""Result File Parser - turn test runner result files into typed records.

Each line of a result file holds at most one record. The grammars are
tried in a fixed order and the first match wins:

1. File:<path>;Line:<line>;Object:<object>;Test:<test>;Status:<status>[;Reason:<reason>]
2. File:<path>;Line:<line>;Object:<object>;Status:<status>
3. File:<path>;Line:<line>;Status:Tests clause coverage: <covered>/<total>[ - (all) | - [i1,i2,...]]
4. File:<path>;Line:<line>;Status:<status>   (object-less summary)

Lines matching no grammar are ignored. A line that matches a grammar but
carries a malformed number is dropped without trying later grammars.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import MissingResultsFile, ParseSkip
from ..paths import normalize_path
from .models import CoverageRecord, ParsedResults, ResultRecord, TestResult, TestSummary

logger = logging.getLogger(__name__)

TEST_LINE = re.compile(
    r"^File:(?P<file>.+?);Line:(?P<line>[^;]*);Object:(?P<object>.+?);"
    r"Test:(?P<test>.+?);Status:(?P<status>.+?)(?:;Reason:(?P<reason>.*))?$",
    re.IGNORECASE,
)

SUMMARY_LINE = re.compile(
    r"^File:(?P<file>.+?);Line:(?P<line>[^;]*);Object:(?P<object>.+?);Status:(?P<status>.+)$",
    re.IGNORECASE,
)

COVERAGE_LINE = re.compile(
    r"^File:(?P<file>.+?);Line:(?P<line>[^;]*);Status:Tests clause coverage: "
    r"(?P<covered>[^/]*)/(?P<total>\S*)(?: - (?P<detail>.+))?$",
    re.IGNORECASE,
)

FILE_SUMMARY_LINE = re.compile(
    r"^File:(?P<file>.+?);Line:(?P<line>[^;]*);Status:(?P<status>.+)$",
    re.IGNORECASE,
)

_ALL_CLAUSES = "(all)"
_INDEX_LIST = re.compile(r"^\[(?P<indexes>.*)\]$")
_DIGITS = re.compile(r"[0-9]+")


def _to_int(value: str, field_name: str) -> int:
    # Plain decimal digits only; int() would also take signs and underscores
    text = value.strip()
    if not _DIGITS.fullmatch(text):
        raise ParseSkip(f"{field_name} is not an integer: {value!r}")
    return int(text)


def parse_test_line(line: str) -> TestResult | None:
    """Parse an individual test result line (None if it is not one)."""
    match = TEST_LINE.match(line)
    if not match:
        return None

    reason = match.group("reason")
    return TestResult(
        file=normalize_path(match.group("file")),
        line=_to_int(match.group("line"), "Line"),
        object=match.group("object"),
        test=match.group("test"),
        status=match.group("status").strip(),
        reason=reason.strip() if reason else None,
    )


def parse_summary_line(line: str) -> TestSummary | None:
    """Parse an object summary line (None if it is not one)."""
    match = SUMMARY_LINE.match(line)
    if not match:
        return None

    return TestSummary(
        file=normalize_path(match.group("file")),
        line=_to_int(match.group("line"), "Line"),
        object=match.group("object"),
        status=match.group("status").strip(),
    )


def parse_coverage_line(line: str) -> CoverageRecord | None:
    """Parse a clause coverage line (None if it is not one)."""
    match = COVERAGE_LINE.match(line)
    if not match:
        return None

    covered = _to_int(match.group("covered"), "covered")
    total = _to_int(match.group("total"), "total")

    return CoverageRecord(
        file=normalize_path(match.group("file")),
        line=_to_int(match.group("line"), "Line"),
        covered=covered,
        total=total,
        covered_indexes=parse_covered_indexes(match.group("detail"), total),
    )


def parse_file_summary_line(line: str) -> TestSummary | None:
    """Parse the object-less summary shape (None if it is not one)."""
    match = FILE_SUMMARY_LINE.match(line)
    if not match:
        return None

    return TestSummary(
        file=normalize_path(match.group("file")),
        line=_to_int(match.group("line"), "Line"),
        object=None,
        status=match.group("status").strip(),
    )


def parse_covered_indexes(detail: str | None, total: int) -> tuple[int, ...]:
    """
    Expand the coverage detail into 1-based clause indexes.

    "(all)" expands to 1..total, "[1,3]" lists indexes explicitly, and a
    missing detail means no index information.
    """
    if detail is None:
        return ()

    detail = detail.strip()
    if detail == _ALL_CLAUSES:
        return tuple(range(1, total + 1))

    match = _INDEX_LIST.match(detail)
    if not match:
        raise ParseSkip(f"Unrecognized coverage detail: {detail!r}")

    return tuple(
        _to_int(item, "clause index")
        for item in match.group("indexes").split(",")
        if item.strip()
    )


# Order matters: first match wins
LINE_PARSERS = (
    parse_test_line,
    parse_summary_line,
    parse_coverage_line,
    parse_file_summary_line,
)


def parse_line(line: str) -> ResultRecord | None:
    """
    Parse one result file line.

    Returns:
        The record, or None when no grammar matches

    Raises:
        ParseSkip: When a grammar matches but a field is malformed
    """
    for parser in LINE_PARSERS:
        record = parser(line)
        if record is not None:
            return record
    return None


def parse_results(content: str) -> ParsedResults:
    """Parse the full text of a result file."""
    results = ParsedResults()

    for number, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue

        try:
            record = parse_line(line)
        except ParseSkip as e:
            logger.debug(f"Skipping result line {number}: {e}")
            results.skipped_lines += 1
            continue

        if isinstance(record, TestResult):
            results.tests.append(record)
        elif isinstance(record, TestSummary):
            results.summaries.append(record)
        elif isinstance(record, CoverageRecord):
            results.coverage.append(record)

    return results


def decode_lines(data: bytes) -> tuple[str, int]:
    """
    Decode result file bytes as UTF-8 one line at a time.

    Lines that are not valid UTF-8 are blanked so the rest of the file
    still parses.

    Returns:
        The decoded text and the number of blanked lines
    """
    lines = []
    invalid = 0
    for number, raw_line in enumerate(data.splitlines(), start=1):
        try:
            lines.append(raw_line.decode("utf-8"))
        except UnicodeDecodeError as e:
            logger.debug(f"Skipping result line {number}: {e}")
            lines.append("")
            invalid += 1
    return "\n".join(lines), invalid


def read_results_file(path: str | Path) -> ParsedResults:
    """
    Read and parse a result file.

    Raises:
        MissingResultsFile: If the file does not exist
    """
    results_path = Path(path)
    try:
        data = results_path.read_bytes()
    except FileNotFoundError:
        raise MissingResultsFile(str(results_path)) from None

    content, invalid = decode_lines(data)
    parsed = parse_results(content)
    parsed.skipped_lines += invalid
    logger.debug(
        f"Parsed {len(parsed.tests)} test results, {len(parsed.summaries)} summaries "
        f"and {len(parsed.coverage)} coverage records from {results_path}"
    )
    return parsed


def format_test_line(result: TestResult) -> str:
    """Render a test result in the result file's test line grammar."""
    line = (
        f"File:{result.file};Line:{result.line};Object:{result.object};"
        f"Test:{result.test};Status:{result.status}"
    )
    if result.reason:
        line += f";Reason:{result.reason}"
    return line


def write_results_file(path: str | Path, tests: list[TestResult]) -> None:
    """Write test results as a result file, one test line each."""
    content = "\n".join(format_test_line(test) for test in tests)
    Path(path).write_text(content, encoding="utf-8")
    logger.debug(f"Wrote {len(tests)} test results to {path}")
