"""MCP handler for get_test_tree (delegates to TestingService)."""

from __future__ import annotations

import json

from mcp.types import TextContent, Tool

from ...services import TestingService

# =============================================================================
# Tool Definition
# =============================================================================

TOOL_DEFINITION = Tool(
    name="get_test_tree",
    description=(
        "Get the Logtalk test tree (workspace > directory > file > object > test) "
        "with each item's id, location, run state and stale flag."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "node_id": {
                "type": "string",
                "description": "Only return the subtree of this item (optional)"
            }
        }
    }
)


# =============================================================================
# Handler
# =============================================================================

async def handle(service: TestingService, arguments: dict) -> list[TextContent]:
    """Return the tree snapshot as JSON."""
    result = service.get_test_tree(node_id=arguments.get("node_id"))

    if not result.success:
        return [TextContent(type="text", text=f"Error: {result.error.message}")]

    return [TextContent(type="text", text=json.dumps(result.data, indent=2))]
