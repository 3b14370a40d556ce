"""Shared formatting utilities for MCP tool responses.

All formatting logic for markdown and JSON responses is centralized here.

- Markdown format: the plain-text messages the agent reads after a tool call
- JSON format: structured data for programmatic access
"""

from typing import Any

from .dispatcher import EditOutcome, ReadFileResult
from .engine.diagnostics import Diagnostic, format_diagnostics
from .engine.exceptions import PatchError

# =============================================================================
# Read Formatting
# =============================================================================


def format_read_file_markdown(result: ReadFileResult) -> str:
    """Format a read_file page as a fenced block.

    Args:
        result: Page returned by the dispatcher

    Returns:
        Path, fenced line-numbered contents, and a hint when more pages follow
    """
    text = f"{result.path}\n```\n{result.file_contents}\n```"
    if result.has_next_page:
        text += (
            f"\n\n(more on next page, use page_number={result.page_number + 1}...)"
            f"\nMore info because truncated: this file has {result.original_line_count} "
            f"lines, or {result.total_file_len} characters."
        )
    return text


def format_read_file_json(result: ReadFileResult) -> dict[str, Any]:
    return result.model_dump(mode="json")


# =============================================================================
# Lint Formatting
# =============================================================================


def format_lint_summary(diagnostics: list[Diagnostic], enabled: bool = True) -> str:
    """Sentence appended to an edit confirmation ("" when diagnostics are off)."""
    if not enabled:
        return ""
    if not diagnostics:
        return " No lint errors found."
    return (
        f" Lint errors found after change:\n{format_diagnostics(diagnostics)}.\n"
        "If this is related to a change made while calling this tool, "
        "you might want to fix the error."
    )


def format_lint_errors_markdown(diagnostics: list[Diagnostic]) -> str:
    if not diagnostics:
        return "No lint errors found."
    return format_diagnostics(diagnostics)


# =============================================================================
# Edit Formatting
# =============================================================================


def format_edit_success_markdown(outcome: EditOutcome) -> str:
    """Format an applied batch the way the agent expects to see it.

    The re-displayed content carries fresh line numbers, and the new line
    count is spelled out because the agent must send it with its next edit.
    """
    result = outcome.result
    lint = format_lint_summary(outcome.diagnostics, outcome.diagnostics_enabled)
    lines = [
        f"Change successfully made to {outcome.path}.{lint}",
        "<read_file_result>this is the file_content applied and user have got it too:",
        f"{result.indexed_content}</read_file_result>",
        f"original_line_count for the next edit of this file: {result.line_count}",
    ]
    for warning in result.warnings:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines)


def format_edit_success_json(outcome: EditOutcome) -> dict[str, Any]:
    result = outcome.result
    return {
        "status": "success",
        "path": outcome.path,
        "message": f"Change successfully made to {outcome.path}.",
        "file_content_applied": result.indexed_content,
        "original_line_count": result.line_count,
        "directives_applied": result.directives_applied,
        "lines_added": result.lines_added,
        "lines_removed": result.lines_removed,
        "warnings": result.warnings,
        "lint_errors": (
            [d.model_dump() for d in outcome.diagnostics] if outcome.diagnostics_enabled else None
        ),
    }


# =============================================================================
# Error Formatting Utilities
# =============================================================================


def format_patch_error(error: PatchError, format_type: str = "json") -> dict[str, Any] | str:
    """Format a rejected batch so the agent can correct it and retry.

    Args:
        error: Any user-triggerable PatchError
        format_type: Response format ("json" or "markdown")

    Returns:
        Error message in requested format; the message is relayed verbatim
    """
    if format_type == "markdown":
        return f"**Error** ({error.stage}: {error.kind}): {error}"
    return {
        "status": "failure",
        "stage": error.stage,
        "error_type": error.kind,
        "error": str(error),
        "details": error.details(),
    }


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "format_read_file_markdown",
    "format_read_file_json",
    "format_lint_summary",
    "format_lint_errors_markdown",
    "format_edit_success_markdown",
    "format_edit_success_json",
    "format_patch_error",
]
