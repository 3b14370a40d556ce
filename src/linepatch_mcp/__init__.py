"""MCP server for line-number anchored file editing."""

__version__ = "0.1.0"
