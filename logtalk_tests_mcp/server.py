"""
MCP server entrypoint for logtalk-tests.

This module is intentionally thin:
- builds the testing service for the configured workspace
- registers tools (from handlers)
- routes tool calls to handlers
"""


from __future__ import annotations

import asyncio
import logging

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent

from .config import Settings
from .handlers.core import HANDLERS as CORE_HANDLERS
from .handlers.core import TOOLS as CORE_TOOLS
from .services import TestingService, create_testing_service

logger = logging.getLogger(__name__)


# =============================================================================
# Server Construction
# =============================================================================

def create_server(service: TestingService) -> Server:
    """Create the MCP server with every tool routed to the given service."""
    server = Server("logtalk-tests")

    @server.list_tools()
    async def list_tools():
        """List all available tools."""
        return CORE_TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Route tool calls to appropriate handlers."""
        logger.info(f"Tool called: {name}")

        handler = CORE_HANDLERS.get(name)

        if handler:
            return await handler(service, arguments or {})

        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    return server


# =============================================================================
# Entry Point
# =============================================================================

async def run_server(settings: Settings | None = None):
    """Run the MCP server."""
    settings = settings or Settings.from_env()
    service = create_testing_service(settings)
    server = create_server(service)

    logger.info("Starting Logtalk Tests MCP Server...")
    logger.info(f"Workspace folders: {list(service.context.workspace_roots)}")
    logger.info(f"Registered {len(CORE_TOOLS)} tools: {[t.name for t in CORE_TOOLS]}")

    if settings.clean_on_start:
        result = await service.clean_results()
        if result.success:
            logger.info(f"Deleted {len(result.data['deleted'])} old test results files")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def main():
    """Entry point."""
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
