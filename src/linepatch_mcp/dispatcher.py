"""Tool dispatcher for the edit tools.

Owns everything around the pure engine that a tool call needs: resolving
the path, holding the same-file guard across read, apply and write-back,
moving blocking file I/O off the event loop, and collecting diagnostics once
the new content is on disk.

A rejected batch (parse, validation, busy or I/O error) raises a PatchError
before anything is written. ApplicationFailureError is logged as an internal
error and propagated unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydantic import BaseModel, Field

from .engine.config import EditorConfig
from .engine.diagnostics import Diagnostic, SyntaxDiagnostics
from .engine.directives import EditBatch, PatchResult
from .engine.exceptions import ApplicationFailureError, PatchError
from .engine.file_guard import FileGuard
from .engine.line_index import format_marker, split_lines
from .engine.patcher import Dialect, apply_batch, parse
from .engine.workspace import Workspace

logger = logging.getLogger(__name__)


class ReadFileResult(BaseModel):
    """One page of a line-numbered file read."""

    path: str
    file_contents: str = Field(description="Line-numbered contents of this page")
    original_line_count: int = Field(description="Total line count of the file")
    start_line: int = Field(description="First line shown (0 when nothing is shown)")
    end_line: int = Field(description="Last line shown (0 when nothing is shown)")
    page_number: int
    has_next_page: bool
    total_file_len: int = Field(description="Characters in the requested line range")


class EditOutcome(BaseModel):
    """A batch that was applied and written back."""

    path: str
    result: PatchResult
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    diagnostics_enabled: bool = True


def paginate_lines(lines: list[str], max_chars: int) -> list[tuple[int, int]]:
    """Split lines into pages of at most ``max_chars`` characters.

    Pages break on line boundaries only; a line longer than ``max_chars`` gets
    a page of its own.

    Returns:
        (first, last) 0-based inclusive line offsets per page
    """
    pages: list[tuple[int, int]] = []
    first = 0
    size = 0
    for offset, line in enumerate(lines):
        line_size = len(line) + 1
        if offset > first and size + line_size > max_chars:
            pages.append((first, offset - 1))
            first, size = offset, 0
        size += line_size
    if lines:
        pages.append((first, len(lines) - 1))
    return pages


class EditDispatcher:
    """Runs read and edit tool calls against the workspace."""

    def __init__(
        self,
        workspace: Workspace,
        guard: FileGuard,
        diagnostics: SyntaxDiagnostics,
        config: EditorConfig,
    ) -> None:
        self.workspace = workspace
        self.guard = guard
        self.diagnostics = diagnostics
        self.config = config

    @classmethod
    def from_config(cls, config: EditorConfig) -> EditDispatcher:
        return cls(
            workspace=Workspace(
                root=config.workspace_root,
                allow_outside=config.allow_outside_workspace,
                encoding=config.encoding,
            ),
            guard=FileGuard(),
            diagnostics=SyntaxDiagnostics(max_errors=config.max_lint_errors),
            config=config,
        )

    async def read_file(
        self,
        path: str,
        start_line: int | None = None,
        end_line: int | None = None,
        page_number: int = 1,
    ) -> ReadFileResult:
        """Read a file with line numbers, one page at a time.

        Markers are padded to the digit count of the file's total line count
        and numbered from the first line actually shown, so they can be used
        directly in edit directives.

        Raises:
            WorkspaceError: The file cannot be resolved or read
        """
        resolved = self.workspace.resolve(path)
        text_file = await asyncio.to_thread(self.workspace.read, resolved)
        lines = split_lines(text_file.content)
        total = len(lines)

        # Non-positive bounds mean "unbounded"
        first = start_line if start_line is not None and start_line >= 1 else 1
        last = end_line if end_line is not None and end_line >= 1 else total
        selected = lines[first - 1 : min(last, total)]

        pages = paginate_lines(selected, self.config.max_file_chars_page)
        total_len = len("\n".join(selected))
        if not 1 <= page_number <= len(pages):
            return ReadFileResult(
                path=str(resolved),
                file_contents="",
                original_line_count=total,
                start_line=0,
                end_line=0,
                page_number=page_number,
                has_next_page=False,
                total_file_len=total_len,
            )

        page_first, page_last = pages[page_number - 1]
        width = len(str(total))
        numbered = "\n".join(
            f"{format_marker(first + offset, width)}{selected[offset]}"
            for offset in range(page_first, page_last + 1)
        )
        return ReadFileResult(
            path=str(resolved),
            file_contents=numbered,
            original_line_count=total,
            start_line=first + page_first,
            end_line=first + page_last,
            page_number=page_number,
            has_next_page=page_number < len(pages),
            total_file_len=total_len,
        )

    async def apply(
        self,
        path: str,
        original_line_count: int,
        raw: str,
        dialect: Dialect = "auto",
    ) -> EditOutcome:
        """Parse, apply and write back one edit batch.

        Raises:
            MalformedDirectiveBatchError: Directive text cannot be parsed
            StaleSnapshotError: File changed since the caller read it
            OutOfBoundsError: Directive references a line outside the file
            OverlappingEditsError: Two range directives intersect
            ResourceBusyError: Another edit of the same file is in flight
            WorkspaceError: File cannot be resolved, read or written
            ApplicationFailureError: Engine defect (propagated as a hard error)
        """
        try:
            directives = parse(raw, dialect)
            resolved = self.workspace.resolve(path)
            with self.guard.hold(str(resolved)):
                text_file = await asyncio.to_thread(self.workspace.read, resolved)
                batch = EditBatch(original_line_count=original_line_count, directives=directives)
                result = apply_batch(
                    text_file.content,
                    batch,
                    strict_line_count=self.config.strict_line_count,
                )
                await asyncio.to_thread(self.workspace.write, text_file, result.content)
                if text_file.mixed_line_endings:
                    result.warnings.append(
                        "File mixed CRLF and LF line endings; every line was written "
                        f"with {text_file.line_ending.name}"
                    )
        except ApplicationFailureError:
            logger.exception(f"Internal error while applying edits to {path}")
            raise
        except PatchError as e:
            logger.warning(f"Rejected edit batch for {path} ({e.kind}): {e}")
            raise

        logger.info(
            f"Applied {result.directives_applied} directives to {resolved}: "
            f"+{result.lines_added} -{result.lines_removed} lines, "
            f"{result.original_line_count} -> {result.line_count}"
        )

        diagnostics: list[Diagnostic] = []
        if self.config.include_lint_errors:
            diagnostics = self.check(resolved, result.content)
        return EditOutcome(
            path=str(resolved),
            result=result,
            diagnostics=diagnostics,
            diagnostics_enabled=self.config.include_lint_errors,
        )

    def check(self, path: Path, content: str) -> list[Diagnostic]:
        return self.diagnostics.check(path, content)

    async def read_lint_errors(self, path: str) -> list[Diagnostic]:
        """Run diagnostics on the current content of a file.

        Raises:
            WorkspaceError: The file cannot be resolved or read
        """
        resolved = self.workspace.resolve(path)
        text_file = await asyncio.to_thread(self.workspace.read, resolved)
        return self.check(resolved, text_file.content)
