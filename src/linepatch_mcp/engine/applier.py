"""Patch applier.

Applies validated directives to a line-indexed buffer. The working buffer is
an ordered list of entries: original lines keep their unique ``[N]`` marker,
inserted lines carry none. Every directive locates its lines by marker in the
*current* buffer, so earlier edits never shift the anchors of later ones.

Replaced or deleted original lines are tombstoned rather than removed. They
stay in the buffer as invisible anchors, so an insertion that targets a line
inside an already replaced range still has a well-defined position.
Content placed in front of the same line (a before-insertion or a
replacement starting there) keeps submission order.

The applier does not know anything about the language of the content and
assumes the batch passed validation. Any lookup that fails anyway is an
engine defect and raises ApplicationFailureError.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .directives import EditDirective, InsertPosition, ReplaceRange
from .exceptions import ApplicationFailureError
from .line_index import LineIndexedText, split_lines

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    """One line of the working buffer."""

    text: str
    marker: str | None = None
    deleted: bool = False
    # Marker of the line this entry was inserted after, for after-insertion ordering
    owner: str | None = None

    def render(self) -> str:
        if self.marker is None:
            return self.text
        return self.text[len(self.marker) :]


class WorkingBuffer:
    """Mutable, marker-addressed view over a LineIndexedText."""

    def __init__(self, indexed: LineIndexedText) -> None:
        self.indexed = indexed
        self.entries = [
            _Entry(text=line, marker=indexed.marker(number))
            for number, line in enumerate(indexed.lines, start=1)
        ]

    def locate(self, line_number: int) -> int:
        """Position of an original line's entry, looked up by its marker."""
        marker = self.indexed.marker(line_number)
        positions = [i for i, entry in enumerate(self.entries) if entry.marker == marker]
        if len(positions) != 1:
            raise ApplicationFailureError(
                f"Line marker {marker} for line {line_number} found {len(positions)} "
                "times in the working buffer (expected exactly once)"
            )
        return positions[0]

    def replace(self, directive: ReplaceRange) -> None:
        start = self.locate(directive.start_line)
        expected = split_lines(self.indexed.fragment(directive.start_line, directive.end_line))
        if len(expected) != directive.end_line - directive.start_line + 1:
            raise ApplicationFailureError(
                f"Line range {directive.start_line}-{directive.end_line} is outside "
                f"the {self.indexed.line_count}-line buffer"
            )

        # Walk the original lines of the range, skipping content inserted in between
        position = start
        for expected_line in expected:
            while position < len(self.entries) and self.entries[position].marker is None:
                position += 1
            if position >= len(self.entries):
                raise ApplicationFailureError(
                    f"Working buffer ended before line range "
                    f"{directive.start_line}-{directive.end_line} was complete"
                )
            entry = self.entries[position]
            if entry.deleted or entry.text != expected_line:
                raise ApplicationFailureError(
                    f"Working buffer does not match the original content at {entry.marker} "
                    f"while applying '{directive.describe()}'"
                )
            entry.deleted = True
            position += 1

        replacement = [_Entry(text=line) for line in directive.content_lines()]
        self.entries[start:start] = replacement

    def insert(self, anchor_line: int, position: InsertPosition, lines: list[str]) -> None:
        anchor = self.locate(anchor_line)
        marker = self.entries[anchor].marker

        if position is InsertPosition.BEFORE:
            self.entries[anchor:anchor] = [_Entry(text=line) for line in lines]
            return

        # After the anchor and after anything already inserted after it
        at = anchor + 1
        while at < len(self.entries) and self.entries[at].owner == marker:
            at += 1
        self.entries[at:at] = [_Entry(text=line, owner=marker) for line in lines]

    def render(self) -> str:
        lines = [entry.render() for entry in self.entries if not entry.deleted]
        text = "\n".join(lines)
        # An inserted blank last line needs its own newline to stay a line
        if lines and (self.indexed.trailing_newline or lines[-1] == ""):
            text += "\n"
        return text


def apply_directives(indexed: LineIndexedText, directives: Sequence[EditDirective]) -> str:
    """Apply directives one at a time, in submission order.

    Args:
        indexed: Line-indexed rendition of the current content
        directives: Validated directives

    Returns:
        New plain content (markers stripped from surviving original lines)

    Raises:
        ApplicationFailureError: A marker could not be found or did not match
    """
    buffer = WorkingBuffer(indexed)
    for directive in directives:
        logger.debug(f"Applying {directive.kind}: {directive.describe()}")
        if isinstance(directive, ReplaceRange):
            buffer.replace(directive)
        else:
            buffer.insert(directive.anchor_line, directive.position, directive.content_lines())
    return buffer.render()
