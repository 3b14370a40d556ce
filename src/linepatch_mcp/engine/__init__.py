"""Line-number anchored edit engine.

The engine turns loosely formatted edit directives into new file content.
Everything in here is pure and synchronous except the host collaborators
(workspace, file guard, diagnostics, config), which the MCP layer wires up.

Key Components:

- line_index: bracketed line markers ([007]) and line counting
- directives: ReplaceRange / InsertAnchored / InsertAfter (discriminated union)
- parser: tolerant extraction of directives from tag-delimited text
- validator: staleness, bounds and overlap checks
- applier: marker-anchored application to a working buffer
- patcher: the parse -> validate -> apply -> re-count pipeline
- exceptions: PatchError hierarchy relayed verbatim to the agent

Pipeline:
    raw text -> parse -> validate(current, declared) -> index -> apply -> strip markers
"""

from .applier import apply_directives
from .config import EditorConfig, EditorConfigLoader
from .diagnostics import Diagnostic, SyntaxDiagnostics, format_diagnostics
from .directives import (
    EditBatch,
    EditDirective,
    InsertAfter,
    InsertAnchored,
    InsertPosition,
    PatchResult,
    ReplaceRange,
)
from .exceptions import (
    ApplicationFailureError,
    LineCountMismatchError,
    MalformedDirectiveBatchError,
    OutOfBoundsError,
    OverlappingEditsError,
    PatchError,
    ResourceBusyError,
    StaleSnapshotError,
    WorkspaceError,
)
from .file_guard import FileGuard
from .line_index import (
    LineIndexedText,
    add_line_numbers,
    count_lines,
    get_fragment,
    strip_line_numbers,
)
from .parser import parse_directives, parse_insert_edits, parse_operations, parse_range_edits
from .patcher import apply_batch, patch_text
from .validator import ValidationReport, validate
from .workspace import LineEnding, TextFile, Workspace

__all__ = [
    # Line indexing
    "LineIndexedText",
    "add_line_numbers",
    "strip_line_numbers",
    "count_lines",
    "get_fragment",
    # Directives
    "EditBatch",
    "EditDirective",
    "ReplaceRange",
    "InsertAnchored",
    "InsertAfter",
    "InsertPosition",
    "PatchResult",
    # Pipeline
    "parse_range_edits",
    "parse_insert_edits",
    "parse_operations",
    "parse_directives",
    "validate",
    "ValidationReport",
    "apply_directives",
    "apply_batch",
    "patch_text",
    # Errors
    "PatchError",
    "MalformedDirectiveBatchError",
    "StaleSnapshotError",
    "OutOfBoundsError",
    "OverlappingEditsError",
    "ApplicationFailureError",
    "LineCountMismatchError",
    "ResourceBusyError",
    "WorkspaceError",
    # Host collaborators
    "Workspace",
    "TextFile",
    "LineEnding",
    "FileGuard",
    "Diagnostic",
    "SyntaxDiagnostics",
    "format_diagnostics",
    "EditorConfig",
    "EditorConfigLoader",
]
