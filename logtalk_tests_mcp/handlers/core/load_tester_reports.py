"""MCP handler for load_tester_reports (delegates to TestingService)."""

from __future__ import annotations

import json

from mcp.types import TextContent, Tool

from ...services import TestingService

TOOL_DEFINITION = Tool(
    name="load_tester_reports",
    description=(
        "Load the xUnit reports (xunit_report.xml) written by the logtalk_tester "
        "script into the test tree, with their pass/fail/skip results. Each report "
        "is also saved as a .vscode_test_results file next to it."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "directory": {
                "type": "string",
                "description": "Directory where the testers ran (default: every workspace folder)"
            }
        }
    }
)


async def handle(service: TestingService, arguments: dict) -> list[TextContent]:
    result = await service.load_tester_reports(directory=arguments.get("directory"))

    if not result.success:
        return [TextContent(type="text", text=f"Error: {result.error.message}")]

    if not result.data["results_files"]:
        return [TextContent(type="text", text="No xUnit reports found.")]

    return [TextContent(type="text", text=json.dumps(result.data, indent=2))]
