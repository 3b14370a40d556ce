"""FastMCP server initialization for linepatch-mcp.

This module initializes the MCP server and manages shared resources via lifespan context.
All tool implementations are in the tools module.

Following the official Anthropic Python SDK patterns:
- Lifespan context manager for resource initialization and cleanup
- Context injection for tool access to shared resources
- FastMCP server with stdio transport
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from .context import AppContext, AppContextType
from .engine.config import EditorConfigLoader

logger = logging.getLogger(__name__)

# =============================================================================
# Shared Resources and Lifespan Management
# =============================================================================


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle with resource initialization and cleanup.

    This lifespan context manager:
    1. Loads the editor configuration (file + environment overrides)
    2. Creates the workspace, file guard and diagnostics behind one dispatcher
    3. Yields context to make resources available to tools
    4. Logs guard statistics on shutdown

    Environment Variables:
        LINEPATCH_CONFIG: Path to the editor config file
        LINEPATCH_WORKSPACE_ROOT: Workspace root directory (default: cwd)
        LINEPATCH_STRICT_LINE_COUNT: Reject batches with an unexpected line count
        LINEPATCH_INCLUDE_LINT_ERRORS: Report syntax diagnostics after edits

    Args:
        _server: FastMCP server instance (unused, required by FastMCP signature)

    Yields:
        AppContext with initialized resources
    """
    logger.info("Initializing MCP server resources...")

    config_loader = EditorConfigLoader()
    config = config_loader.load_config()

    app_context = AppContext.from_config(config)
    logger.info(f"Workspace root: {app_context.dispatcher.workspace.root}")
    if config.allow_outside_workspace:
        logger.warning("Edits outside the workspace root are allowed")

    try:
        yield app_context
    finally:
        logger.info("Shutting down MCP server...")
        stats = app_context.dispatcher.guard.get_stats()
        logger.info(
            f"File guard stats: {stats['acquired']} edits, "
            f"{stats['rejected']} rejected as busy"
        )


# Initialize MCP server with lifespan management
# Following Python MCP naming convention: {service}_mcp
mcp = FastMCP("linepatch_mcp", lifespan=app_lifespan)


# =============================================================================
# Server Entry Point
# =============================================================================


def main() -> None:
    """Entry point for running the MCP server.

    This function is called when the server is run directly via:
    - python -m linepatch_mcp
    - linepatch-mcp (console script entry point)

    Defaults to stdio transport for MCP protocol communication.
    """
    # Get log level from environment variable, default to INFO
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level_str = os.getenv("LINEPATCH_LOG_LEVEL", "INFO").upper()

    if log_level_str not in valid_log_levels:
        print(
            f"Warning: Invalid LINEPATCH_LOG_LEVEL '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(valid_log_levels))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    log_level = getattr(logging, log_level_str)

    # Configure logging to stderr (MCP requirement)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.info("Starting MCP server (press Ctrl+C to stop)...")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully...")
    except Exception as e:
        logger.exception(f"Server error: {e}")
        sys.exit(1)

    logger.info("Server shutdown complete")


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "mcp",
    "main",
    "app_lifespan",
    "AppContext",
    "AppContextType",
]
