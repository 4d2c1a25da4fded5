"""MCP handler for clean_results (delegates to TestingService)."""

from __future__ import annotations

import json

from mcp.types import TextContent, Tool

from ...services import TestingService

TOOL_DEFINITION = Tool(
    name="clean_results",
    description=(
        "Delete every .vscode_test_results file in the workspace folders and "
        "empty the test tree and coverage data. Results come back on the next run."
    ),
    inputSchema={
        "type": "object",
        "properties": {}
    }
)


async def handle(service: TestingService, arguments: dict) -> list[TextContent]:
    result = await service.clean_results()

    if not result.success:
        return [TextContent(type="text", text=f"Error: {result.error.message}")]

    return [TextContent(type="text", text=json.dumps(result.data, indent=2))]
