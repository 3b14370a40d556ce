"""Exceptions raised while parsing, validating and applying an edit batch.

Every user-triggerable failure is raised before the working buffer is touched,
so a rejected batch never leaves a partially edited file behind. The message
of each exception is relayed verbatim to the agent so it can correct its
directives and retry.

Exception Hierarchy:
    PatchError (base)
    ├── MalformedDirectiveBatchError (directive text cannot be parsed)
    ├── StaleSnapshotError (declared line count differs from the file)
    ├── OutOfBoundsError (line reference outside the file)
    ├── OverlappingEditsError (two range edits intersect)
    ├── ApplicationFailureError (internal invariant violated - a defect)
    │   └── LineCountMismatchError (strict line count re-verification failed)
    ├── ResourceBusyError (another patch on the same file is in flight)
    └── WorkspaceError (file cannot be resolved, read or written)

Example:
    >>> try:
    ...     result = apply_batch(content, batch)
    ... except StaleSnapshotError as e:
    ...     print(f"Re-read the file: {e.current_line_count} lines now")
"""

from __future__ import annotations

from typing import Any, ClassVar


class PatchError(Exception):
    """Base exception for all edit batch errors.

    Attributes:
        stage: Pipeline stage that rejected the batch (parse, validate, apply,
            dispatch, io)
        kind: Stable machine-readable error name used in tool responses
    """

    stage: ClassVar[str] = "patch"
    kind: ClassVar[str] = "patch_error"

    def details(self) -> dict[str, Any]:
        """Structured error context for tool responses."""
        return {}


class MalformedDirectiveBatchError(PatchError):
    """Exception raised when directive text cannot be turned into directives.

    Covers three situations: no recognizable segment in the input, a segment
    missing a required field, and a non-numeric value in a numeric field.

    Attributes:
        reason: What is wrong with the input
        segment_index: Index of the offending segment (None if no segment found)
        field: Name of the missing or invalid field (None if not field-specific)
        segment: Raw text of the offending segment
        raw_input: The full directive text as received
    """

    stage: ClassVar[str] = "parse"
    kind: ClassVar[str] = "malformed_directive_batch"

    def __init__(
        self,
        reason: str,
        *,
        segment_index: int | None = None,
        field: str | None = None,
        segment: str | None = None,
        raw_input: str = "",
    ) -> None:
        self.reason = reason
        self.segment_index = segment_index
        self.field = field
        self.segment = segment
        self.raw_input = raw_input

        if segment_index is None:
            message = f"{reason}. full value: {raw_input}"
        else:
            message = f"edits[{segment_index}]: {reason}. segment: {segment}"
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {
            "segment_index": self.segment_index,
            "field": self.field,
            "segment": self.segment,
        }


class StaleSnapshotError(PatchError):
    """Exception raised when the caller's snapshot of the file is out of date.

    The declared line count is the only version marker the agent has; any
    mismatch means the file changed since it was read.

    Attributes:
        current_line_count: Line count of the file right now
        declared_line_count: Line count the caller remembered
    """

    stage: ClassVar[str] = "validate"
    kind: ClassVar[str] = "stale_snapshot"

    def __init__(self, current_line_count: int, declared_line_count: int) -> None:
        self.current_line_count = current_line_count
        self.declared_line_count = declared_line_count
        super().__init__(
            "File content has been changed. Please refresh the file and try again. "
            f"current line count: {current_line_count}, "
            f"your file version line count: {declared_line_count}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "current_line_count": self.current_line_count,
            "declared_line_count": self.declared_line_count,
        }


class OutOfBoundsError(PatchError):
    """Exception raised when a directive references lines outside the file.

    Attributes:
        directive_index: Segment index of the offending directive
        description: Human-readable rendering of the directive's lines
        line_count: Current line count (the valid upper bound)
    """

    stage: ClassVar[str] = "validate"
    kind: ClassVar[str] = "out_of_bounds"

    def __init__(self, directive_index: int, description: str, bound: str, line_count: int) -> None:
        self.directive_index = directive_index
        self.description = description
        self.line_count = line_count
        super().__init__(
            f"Invalid line range at edits[{directive_index}] ({description}): {bound}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "directive_index": self.directive_index,
            "directive": self.description,
            "line_count": self.line_count,
        }


class OverlappingEditsError(PatchError):
    """Exception raised when two range directives of one batch intersect.

    Attributes:
        first_index: Segment index of the earlier range (by start line)
        first_range: (start, end) of the earlier range
        second_index: Segment index of the later range
        second_range: (start, end) of the later range
    """

    stage: ClassVar[str] = "validate"
    kind: ClassVar[str] = "overlapping_edits"

    def __init__(
        self,
        first_index: int,
        first_range: tuple[int, int],
        second_index: int,
        second_range: tuple[int, int],
    ) -> None:
        self.first_index = first_index
        self.first_range = first_range
        self.second_index = second_index
        self.second_range = second_range
        super().__init__(
            f"Edit blocks overlap at edits[{first_index}] "
            f"(lines {first_range[0]}-{first_range[1]}) and edits[{second_index}] "
            f"(lines {second_range[0]}-{second_range[1]}). Overlapping edits are not allowed."
        )

    def details(self) -> dict[str, Any]:
        return {
            "first_index": self.first_index,
            "first_range": list(self.first_range),
            "second_index": self.second_index,
            "second_range": list(self.second_range),
        }


class ApplicationFailureError(PatchError):
    """Exception raised when an internal invariant breaks during application.

    Validation makes this unreachable for well-formed batches; seeing it means
    a defect in the engine, not a problem with the agent's input. Tool layers
    let it propagate as a hard failure instead of formatting it.
    """

    stage: ClassVar[str] = "apply"
    kind: ClassVar[str] = "application_failure"


class LineCountMismatchError(ApplicationFailureError):
    """Exception raised when the patched content has an unexpected line count.

    Only raised with strict line count re-verification enabled; otherwise the
    mismatch is reported as a warning on the result.

    Attributes:
        expected: Line count predicted from the directives
        actual: Line count of the produced content
    """

    kind: ClassVar[str] = "line_count_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Line count mismatch after applying edits. Expected: {expected} lines, "
            f"Actual: {actual} lines. This is usually caused by inconsistent line "
            "endings in the replacement content."
        )

    def details(self) -> dict[str, Any]:
        return {"expected": self.expected, "actual": self.actual}


class ResourceBusyError(PatchError):
    """Exception raised when a patch is already in flight for the same file.

    The second request is rejected rather than queued: the staleness check is
    only meaningful if nobody else can write between check and write-back.

    Attributes:
        path: Resolved path of the busy file
    """

    stage: ClassVar[str] = "dispatch"
    kind: ClassVar[str] = "resource_busy"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Another edit is currently being applied to {path}. "
            "Wait for it to finish, re-read the file and try again."
        )

    def details(self) -> dict[str, Any]:
        return {"path": self.path}


class WorkspaceError(PatchError):
    """Exception raised when a file cannot be resolved, read or written.

    Attributes:
        path: Path as given by the caller
        reason: Why the operation failed
    """

    stage: ClassVar[str] = "io"
    kind: ClassVar[str] = "workspace_error"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")

    def details(self) -> dict[str, Any]:
        return {"path": self.path}
