"""MCP handler for get_coverage (delegates to TestingService)."""

from __future__ import annotations

import json

from mcp.types import TextContent, Tool

from ...services import TestingService

# =============================================================================
# Tool Definition
# =============================================================================

TOOL_DEFINITION = Tool(
    name="get_coverage",
    description=(
        "Get clause coverage from the last test runs. Without file_path, returns "
        "covered/total clause and predicate counts per file. With file_path, "
        "returns every clause of that file with its source range and whether "
        "it was executed."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "file_path": {
                "type": "string",
                "description": "Source file to get per-clause coverage for (optional)"
            }
        }
    }
)


# =============================================================================
# Handler
# =============================================================================

async def handle(service: TestingService, arguments: dict) -> list[TextContent]:
    """Return coverage summaries or per-clause detail as JSON."""
    result = await service.get_coverage(file_path=arguments.get("file_path"))

    if not result.success:
        return [TextContent(type="text", text=f"Error: {result.error.message}")]

    if "files" in result.data and not result.data["files"]:
        return [TextContent(type="text", text="No coverage data. Run tests with code coverage enabled first.")]

    return [TextContent(type="text", text=json.dumps(result.data, indent=2))]
