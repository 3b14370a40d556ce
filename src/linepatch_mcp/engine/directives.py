"""Edit directive models.

A directive is one atomic instruction against the *original* snapshot of a
file. Three shapes exist, modeled as a closed union discriminated by ``kind``:

1. ReplaceRange: replace an inclusive line range (empty content deletes)
2. InsertAnchored: insert before or after an anchor line
3. InsertAfter: insert after a line (the position-free insertion form)

Line numbers are 1-based and are never adjusted for earlier directives of the
same batch. Range checks live in the validator so that a bad line number is
reported as an out-of-bounds error rather than a model validation error.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .line_index import normalize_line_endings


class InsertPosition(str, Enum):
    """Placement of inserted content relative to its anchor line."""

    BEFORE = "before"
    AFTER = "after"


class _Directive(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_content: str = Field(default="", description="Content to write (plain text)")
    segment: int | None = Field(
        default=None,
        description="Index of the input segment this directive was parsed from",
    )

    def content_lines(self) -> list[str]:
        """Lines this directive writes into the file."""
        if not self.new_content:
            return []
        return normalize_line_endings(self.new_content).split("\n")


class _Insertion(_Directive):
    def content_lines(self) -> list[str]:
        # An empty insertion still writes one blank line
        return super().content_lines() or [""]


class ReplaceRange(_Directive):
    """Replace lines ``start_line..end_line`` (inclusive) with new content."""

    kind: Literal["replace_range"] = "replace_range"
    start_line: int = Field(description="First line to replace (1-based)")
    end_line: int = Field(description="Last line to replace (inclusive)")

    def describe(self) -> str:
        action = "delete" if not self.new_content else "replace"
        return f"{action} lines {self.start_line}-{self.end_line}"


class InsertAnchored(_Insertion):
    """Insert new content immediately before or after an anchor line."""

    kind: Literal["insert_anchored"] = "insert_anchored"
    anchor_line: int = Field(description="Line the insertion is positioned against")
    position: InsertPosition = Field(description="before or after the anchor line")

    def describe(self) -> str:
        return f"insert {self.position.value} line {self.anchor_line}"


class InsertAfter(_Insertion):
    """Insert new content after a line."""

    kind: Literal["insert_after"] = "insert_after"
    after_line: int = Field(description="Line after which content is inserted")

    @property
    def anchor_line(self) -> int:
        return self.after_line

    @property
    def position(self) -> InsertPosition:
        return InsertPosition.AFTER

    def describe(self) -> str:
        return f"insert after line {self.after_line}"


EditDirective = Annotated[
    ReplaceRange | InsertAnchored | InsertAfter,
    Field(discriminator="kind"),
]

InsertionDirective = InsertAnchored | InsertAfter


class EditBatch(BaseModel):
    """Directives submitted together against one declared snapshot."""

    original_line_count: int = Field(
        description="Total line count of the file as the caller last read it"
    )
    directives: list[EditDirective] = Field(default_factory=list)


class PatchResult(BaseModel):
    """Outcome of a successfully applied batch.

    ``content`` is plain text (no markers); ``indexed_content`` is the same
    text with line numbers, ready to be shown to the caller again.
    """

    content: str = Field(description="New file content")
    indexed_content: str = Field(default="", description="New content with line numbers")
    original_line_count: int = Field(description="Line count before the batch")
    line_count: int = Field(description="Line count after the batch")
    directives_applied: int = Field(default=0)
    lines_added: int = Field(default=0, description="Lines written by directives")
    lines_removed: int = Field(default=0, description="Original lines replaced or deleted")
    warnings: list[str] = Field(default_factory=list)
