"""Patch validator.

Checks an edit batch against the current state of a file before anything is
applied. Checks run in a fixed order and stop at the first failure:

1. Staleness: the declared line count must equal the current line count
2. Bounds: every line reference must exist in the current file
3. Overlap: range directives must not intersect (touching is fine)

Insertions are anchor points, not ranges: they are only bounds-checked, and
several insertions may share an anchor line.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .directives import EditDirective, InsertAfter, InsertAnchored, ReplaceRange
from .exceptions import OutOfBoundsError, OverlappingEditsError, StaleSnapshotError

logger = logging.getLogger(__name__)


def directive_index(directive: EditDirective, position: int) -> int:
    """Index reported for a directive: its input segment, else its position."""
    return directive.segment if directive.segment is not None else position


@dataclass
class ValidationReport:
    """Result of a successful validation.

    Attributes:
        line_count: Current line count the batch was validated against
        ranges: (index, directive) for every range directive, sorted by start
        insertions: (index, directive) for every insertion, in submission order
        lines_removed: Original lines covered by range directives
        lines_added: Lines the directives will write
    """

    line_count: int
    ranges: list[tuple[int, ReplaceRange]] = field(default_factory=list)
    insertions: list[tuple[int, InsertAnchored | InsertAfter]] = field(default_factory=list)
    lines_removed: int = 0
    lines_added: int = 0

    @property
    def expected_line_count(self) -> int:
        return self.line_count - self.lines_removed + self.lines_added


def check_staleness(current_line_count: int, declared_line_count: int) -> None:
    if current_line_count != declared_line_count:
        raise StaleSnapshotError(current_line_count, declared_line_count)


def check_bounds(index: int, directive: EditDirective, line_count: int) -> None:
    if isinstance(directive, ReplaceRange):
        if not 1 <= directive.start_line <= directive.end_line <= line_count:
            raise OutOfBoundsError(
                index,
                directive.describe(),
                f"start_line must be >= 1 and <= end_line <= {line_count}",
                line_count,
            )
        return

    if not 1 <= directive.anchor_line <= line_count:
        raise OutOfBoundsError(
            index,
            directive.describe(),
            f"anchor line must be >= 1 and <= {line_count}",
            line_count,
        )


def check_overlaps(ranges: Sequence[tuple[int, ReplaceRange]]) -> None:
    """Raise on the first pair of intersecting ranges.

    ``ranges`` must be sorted by start line; only neighbours need comparing.
    """
    for (prev_index, prev), (next_index, nxt) in zip(ranges, ranges[1:]):
        if nxt.start_line <= prev.end_line:
            raise OverlappingEditsError(
                prev_index,
                (prev.start_line, prev.end_line),
                next_index,
                (nxt.start_line, nxt.end_line),
            )


def validate(
    current_line_count: int,
    declared_line_count: int,
    directives: Sequence[EditDirective],
) -> ValidationReport:
    """Validate a batch without touching any content.

    Args:
        current_line_count: Authoritative line count of the file right now
        declared_line_count: Line count the caller read the file with
        directives: Parsed directives in submission order

    Returns:
        ValidationReport with the directives grouped for the applier

    Raises:
        StaleSnapshotError: Declared and current line counts differ
        OutOfBoundsError: A directive references a line outside the file
        OverlappingEditsError: Two range directives intersect
    """
    check_staleness(current_line_count, declared_line_count)

    report = ValidationReport(line_count=current_line_count)
    for position, directive in enumerate(directives):
        index = directive_index(directive, position)
        check_bounds(index, directive, current_line_count)
        report.lines_added += len(directive.content_lines())
        if isinstance(directive, ReplaceRange):
            report.ranges.append((index, directive))
            report.lines_removed += directive.end_line - directive.start_line + 1
        else:
            report.insertions.append((index, directive))

    # Stable sort keeps submission order for equal starts
    report.ranges.sort(key=lambda item: item[1].start_line)
    check_overlaps(report.ranges)

    logger.debug(
        f"Validated {len(report.ranges)} range and {len(report.insertions)} insert "
        f"directives against {current_line_count} lines"
    )
    return report
