"""MCP tool implementations for line-number anchored file editing.

This module contains all MCP tool function implementations that expose the
edit engine to an agent via the MCP protocol.

Following official Anthropic MCP Python SDK patterns:
- Tool functions decorated with @mcp.tool()
- Flat parameter signatures with Annotated types for validation
- Type hints for automatic schema generation
- Async functions for all tools
- Clear docstrings (become tool descriptions)

Rejected batches are returned as failure responses the agent can act on.
ApplicationFailureError is an engine defect and is raised as a tool error.
"""

from typing import Annotated, Any, Literal

from mcp.types import ToolAnnotations
from pydantic import Field

from .context import AppContextType
from .engine.exceptions import ApplicationFailureError, PatchError
from .engine.patcher import Dialect
from .formatting import (
    format_edit_success_json,
    format_edit_success_markdown,
    format_lint_errors_markdown,
    format_patch_error,
    format_read_file_json,
    format_read_file_markdown,
)
from .server import mcp

CONTEXT_UNAVAILABLE = {
    "status": "failure",
    "error": "Server context not available. Tool requires context to access resources.",
}


async def _apply_edits(
    ctx: AppContextType,
    path: str,
    original_line_count: int,
    raw: str,
    dialect: Dialect,
    format_type: str,
) -> dict[str, Any] | str:
    """Shared body of the edit tools."""
    if ctx is None:
        return CONTEXT_UNAVAILABLE

    app_ctx = ctx.request_context.lifespan_context
    try:
        outcome = await app_ctx.dispatcher.apply(path, original_line_count, raw, dialect)
    except ApplicationFailureError:
        raise
    except PatchError as e:
        return format_patch_error(e, format_type)

    if format_type == "markdown":
        return format_edit_success_markdown(outcome)
    return format_edit_success_json(outcome)


# =============================================================================
# MCP Tools (following official SDK decorator pattern)
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Read File",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def read_file(
    path: Annotated[
        str,
        Field(description="File path (relative to the workspace root or absolute)", min_length=1),
    ],
    start_line: Annotated[
        int | None,
        Field(description="First line to read (1-based, default: start of file)"),
    ] = None,
    end_line: Annotated[
        int | None,
        Field(description="Last line to read (inclusive, default: end of file)"),
    ] = None,
    page_number: Annotated[
        int,
        Field(description="Page of a long file to read", ge=1),
    ] = 1,
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "markdown",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Read a file with [N] line numbers. Use the numbers and the total line count to edit it."""
    if ctx is None:
        return CONTEXT_UNAVAILABLE

    app_ctx = ctx.request_context.lifespan_context
    try:
        result = await app_ctx.dispatcher.read_file(path, start_line, end_line, page_number)
    except PatchError as e:
        return format_patch_error(e, format)

    if format == "markdown":
        return format_read_file_markdown(result)
    return format_read_file_json(result)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Replace File Blocks",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,  # Re-applying fails the line count check
        openWorldHint=False,
    )
)
async def replace_file_blocks(
    path: Annotated[
        str,
        Field(description="File path (relative to the workspace root or absolute)", min_length=1),
    ],
    original_line_count: Annotated[
        int,
        Field(description="Total line count of the file when you last read it", ge=0),
    ],
    edits: Annotated[
        str,
        Field(
            description=(
                "One or more <edit> elements, each with "
                "<original_line_range>start:end</original_line_range> and "
                "<new_content>...</new_content>. Line numbers refer to the file as read; "
                "do not adjust them for other edits. Ranges must not overlap. "
                "Empty new_content deletes the lines."
            ),
            min_length=1,
        ),
    ],
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Replace line ranges of a file. Required: path, original_line_count, edits."""
    return await _apply_edits(ctx, path, original_line_count, edits, "range", format)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Insert File Blocks",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def insert_file_blocks(
    path: Annotated[
        str,
        Field(description="File path (relative to the workspace root or absolute)", min_length=1),
    ],
    original_line_count: Annotated[
        int,
        Field(description="Total line count of the file when you last read it", ge=0),
    ],
    edits: Annotated[
        str,
        Field(
            description=(
                "One or more <edit> elements, each with <line_index>N</line_index> and "
                "<before_after>before|after</before_after>, or with "
                "<insert_after_line>N</insert_after_line>, plus <new_content>...</new_content>. "
                "Insertions on the same line are applied in the order given."
            ),
            min_length=1,
        ),
    ],
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Insert content before or after lines. Required: path, original_line_count, edits."""
    return await _apply_edits(ctx, path, original_line_count, edits, "insert", format)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Apply Edit Operations",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def apply_edit_operations(
    path: Annotated[
        str,
        Field(description="File path (relative to the workspace root or absolute)", min_length=1),
    ],
    original_line_count: Annotated[
        int,
        Field(description="Total line count of the file when you last read it", ge=0),
    ],
    operations: Annotated[
        str,
        Field(
            description=(
                'One or more <operation type="replace|delete|insert"> elements. '
                'replace/delete take <range start="N" end="M"/>; insert takes an '
                'after="N" attribute or <line>N</line>. Content goes in '
                "<content><![CDATA[...]]></content>."
            ),
            min_length=1,
        ),
    ],
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Apply replace/delete/insert operations to a file. Required: path, original_line_count."""
    return await _apply_edits(ctx, path, original_line_count, operations, "operations", format)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Read Lint Errors",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def read_lint_errors(
    path: Annotated[
        str,
        Field(description="File path (relative to the workspace root or absolute)", min_length=1),
    ],
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "markdown",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Check a file for syntax errors (Python, JSON, YAML, TOML, XML)."""
    if ctx is None:
        return CONTEXT_UNAVAILABLE

    app_ctx = ctx.request_context.lifespan_context
    try:
        diagnostics = await app_ctx.dispatcher.read_lint_errors(path)
    except PatchError as e:
        return format_patch_error(e, format)

    if format == "markdown":
        return format_lint_errors_markdown(diagnostics)
    return {"path": path, "lint_errors": [d.model_dump() for d in diagnostics]}
