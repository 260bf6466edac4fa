"""MCP server exposing AEM site, content and asset operations."""

__version__ = "1.0.0"
