"""MCP handler for notify_edit (delegates to TestingService)."""

from __future__ import annotations

import json

from mcp.types import TextContent, Tool

from ...services import TestingService

TOOL_DEFINITION = Tool(
    name="notify_edit",
    description=(
        "Notify that a Logtalk source file was edited. Its test items keep their "
        "last results but are flagged stale until the next run."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "file_path": {
                "type": "string",
                "description": "Path of the edited source file"
            },
            "is_dirty": {
                "type": "boolean",
                "description": "Whether the editor buffer differs from disk (default: true)"
            }
        },
        "required": ["file_path"]
    }
)


async def handle(service: TestingService, arguments: dict) -> list[TextContent]:
    """Mark the file's test items stale."""
    result = service.notify_edit(
        file_path=arguments.get("file_path"),
        is_dirty=arguments.get("is_dirty", True),
    )

    if not result.success:
        return [TextContent(type="text", text=f"Error: {result.error.message}")]

    return [TextContent(type="text", text=json.dumps(result.data, indent=2))]
