"""Logtalk tests MCP server - test tree synchronization and clause coverage for Logtalk."""

__version__ = "0.1.0"
