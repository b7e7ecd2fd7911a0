"""Comp Calc MCP server."""
