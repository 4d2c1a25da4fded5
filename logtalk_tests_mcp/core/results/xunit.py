"""xUnit report parsing for results produced by the logtalk_tester script.

Each testcase becomes a TestResult:

    <testcase classname="tests" name="test_name" time="0.001">
      <properties>
        <property name="file" value="path/to/tests.lgt"/>
        <property name="position" value="34-36"/>
      </properties>
      [<failure message="..."/>]
      [<skipped/>]
    </testcase>
"""

from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from ..errors import InvalidReport, MissingResultsFile
from ..paths import normalize_path
from .models import ParsedResults, TestResult

logger = logging.getLogger(__name__)

_POSITION = re.compile(r"^(?P<start>[0-9]+)(?:-[0-9]+)?$")


def parse_xunit_report(content: str, report_path: str) -> ParsedResults:
    """
    Parse the text of an xUnit report into test results.

    Testcases without a classname, name or file are ignored. The file
    comes from the "file" property, else the testcase's file attribute.

    Raises:
        InvalidReport: If the content is not well-formed XML
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise InvalidReport(report_path, str(e)) from None

    results = ParsedResults()
    report_dir = os.path.dirname(normalize_path(report_path))

    for case in root.iter("testcase"):
        object_name = case.attrib.get("classname")
        test_name = case.attrib.get("name")
        if not object_name or not test_name:
            logger.debug(f"Skipping testcase without classname or name in {report_path}")
            results.skipped_lines += 1
            continue

        properties = {
            prop.attrib.get("name"): prop.attrib.get("value", "")
            for prop in case.iter("property")
        }
        file = properties.get("file") or case.attrib.get("file")
        if not file:
            logger.debug(f"Skipping testcase {object_name}::{test_name} without a file in {report_path}")
            results.skipped_lines += 1
            continue

        status, reason = _case_status(case)
        results.tests.append(TestResult(
            file=_resolve_file(file, report_dir),
            line=_position_line(properties.get("position", "")),
            object=object_name,
            test=test_name,
            status=status,
            reason=reason,
        ))

    return results


def read_xunit_report(path: str | Path) -> ParsedResults:
    """
    Read and parse an xUnit report file.

    Raises:
        MissingResultsFile: If the file does not exist
        InvalidReport: If the file is not well-formed XML
    """
    report_path = Path(path)
    try:
        content = report_path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        raise MissingResultsFile(str(report_path)) from None

    parsed = parse_xunit_report(content, str(report_path))
    logger.debug(f"Parsed {len(parsed.tests)} testcases from {report_path}")
    return parsed


def _case_status(case: ET.Element) -> tuple[str, str | None]:
    failure = case.find("failure")
    if failure is None:
        failure = case.find("error")
    if failure is not None:
        message = failure.attrib.get("message")
        # Result files are line based
        return "failed", " ".join(message.split()) if message else None

    if case.find("skipped") is not None:
        return "skipped", None

    return "passed", None


def _position_line(position: str) -> int:
    """Start line of a "start-end" position, 1 when absent."""
    match = _POSITION.match(position.strip())
    return int(match.group("start")) if match else 1


def _resolve_file(file: str, report_dir: str) -> str:
    """
    Absolute path of a testcase's file property.

    Relative paths are tried against the home directory first, where the
    tester script writes them relative to, then against the report's
    directory.
    """
    if os.path.isabs(file):
        return normalize_path(file)

    in_home = os.path.join(os.path.expanduser("~"), file)
    if os.path.exists(in_home):
        return normalize_path(in_home)
    return normalize_path(os.path.join(report_dir, file))
