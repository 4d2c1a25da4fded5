"""MCP tool definitions and handlers."""

from .core import HANDLERS, TOOLS

__all__ = ["TOOLS", "HANDLERS"]
