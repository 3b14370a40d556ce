"""Shared context types for MCP server.

This module contains context types used across server and tools modules,
separated to avoid circular imports.
"""

from dataclasses import dataclass

from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession

from .dispatcher import EditDispatcher
from .engine.config import EditorConfig


@dataclass
class AppContext:
    """Application context containing shared resources for MCP tools.

    Created once during server startup and made available to all tools via
    dependency injection through the Context parameter.
    """

    config: EditorConfig
    dispatcher: EditDispatcher

    @classmethod
    def from_config(cls, config: EditorConfig) -> "AppContext":
        return cls(config=config, dispatcher=EditDispatcher.from_config(config))


# Type alias for MCP tool context parameter
AppContextType = Context[ServerSession, AppContext]


__all__ = ["AppContext", "AppContextType"]
