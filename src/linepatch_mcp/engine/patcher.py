"""Patch pipeline: parse, validate, index, apply and re-verify.

This is the only entry point the host needs. It is pure and synchronous:
content in, PatchResult out. A rejected batch raises before any output is
produced, so the caller never has partially edited content to deal with.
"""

from __future__ import annotations

import logging
from typing import Literal

from .applier import apply_directives
from .directives import EditBatch, EditDirective, PatchResult
from .exceptions import LineCountMismatchError
from .line_index import LineIndexedText, count_lines, normalize_line_endings
from .parser import parse_directives, parse_insert_edits, parse_operations, parse_range_edits
from .validator import validate

logger = logging.getLogger(__name__)

Dialect = Literal["auto", "range", "insert", "operations"]

PARSERS = {
    "auto": parse_directives,
    "range": parse_range_edits,
    "insert": parse_insert_edits,
    "operations": parse_operations,
}


def parse(raw: str, dialect: Dialect = "auto") -> list[EditDirective]:
    """Parse directive text with the parser for ``dialect``."""
    try:
        parser = PARSERS[dialect]
    except KeyError:
        raise ValueError(
            f"Unknown directive dialect '{dialect}'. Valid dialects: {', '.join(PARSERS)}"
        ) from None
    return parser(raw)


def apply_batch(content: str, batch: EditBatch, strict_line_count: bool = False) -> PatchResult:
    """Apply an edit batch to content.

    Args:
        content: Authoritative current content (any line ending style)
        batch: Directives plus the caller's declared line count
        strict_line_count: Reject the batch when the produced line count
            differs from the one predicted by the directives, instead of
            returning a warning

    Returns:
        PatchResult with LF-normalized content

    Raises:
        StaleSnapshotError: Declared line count differs from the content
        OutOfBoundsError: A directive references a line outside the content
        OverlappingEditsError: Two range directives intersect
        ApplicationFailureError: Engine defect while applying
        LineCountMismatchError: Unexpected line count (strict mode only)
    """
    normalized = normalize_line_endings(content)
    current_line_count = count_lines(normalized)
    report = validate(current_line_count, batch.original_line_count, batch.directives)

    indexed = LineIndexedText.from_text(normalized)
    new_content = apply_directives(indexed, batch.directives)

    warnings: list[str] = []
    line_count = count_lines(new_content)
    if line_count != report.expected_line_count:
        mismatch = LineCountMismatchError(report.expected_line_count, line_count)
        if strict_line_count:
            raise mismatch
        logger.warning(str(mismatch))
        warnings.append(str(mismatch))

    logger.debug(
        f"Applied {len(batch.directives)} directives: "
        f"{current_line_count} -> {line_count} lines"
    )
    return PatchResult(
        content=new_content,
        indexed_content=LineIndexedText.from_text(new_content).text,
        original_line_count=current_line_count,
        line_count=line_count,
        directives_applied=len(batch.directives),
        lines_added=report.lines_added,
        lines_removed=report.lines_removed,
        warnings=warnings,
    )


def patch_text(
    content: str,
    declared_line_count: int,
    raw: str,
    dialect: Dialect = "auto",
    strict_line_count: bool = False,
) -> PatchResult:
    """Parse directive text and apply it to content in one step.

    Raises:
        MalformedDirectiveBatchError: Directive text cannot be parsed
        PatchError: Any validation or application error from apply_batch
    """
    batch = EditBatch(original_line_count=declared_line_count, directives=parse(raw, dialect))
    return apply_batch(content, batch, strict_line_count=strict_line_count)
