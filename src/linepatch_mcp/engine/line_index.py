"""Line-numbered text representation.

Every line of a buffer is prefixed with a bracketed, zero-padded ordinal
(``[007]``). The markers give the applier stable, unique anchors that do not
shift while several edits are applied to the same buffer, and they are what
the agent sees when it reads a file.

Invariants:
- ``strip_line_numbers(add_line_numbers(t)) == normalize_line_endings(t)``
- ``add_line_numbers(add_line_numbers(t)) == add_line_numbers(t)``
- A single trailing newline is not a line: it is kept but never numbered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

LINE_MARKER_PATTERN = re.compile(r"^\[\d+\]", re.MULTILINE)


def normalize_line_endings(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def split_lines(text: str) -> list[str]:
    """Split text into logical lines.

    The empty string after a single trailing newline is not a line.

    Examples:
        >>> split_lines("a\\nb\\n")
        ['a', 'b']
        >>> split_lines("")
        []
    """
    if not text:
        return []
    lines = normalize_line_endings(text).split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def count_lines(text: str) -> int:
    """Count lines the way the agent sees them.

    ``""`` has 0 lines, ``"a"`` and ``"a\\n"`` have 1, ``"a\\nb\\n"`` has 2.
    """
    return len(split_lines(text))


def marker_width(start_at: int, total_lines: int) -> int:
    """Digit count of the highest line number in a numbered buffer."""
    return len(str(max(start_at + total_lines - 1, 1)))


def format_marker(line_number: int, width: int) -> str:
    return f"[{str(line_number).zfill(width)}]"


def add_line_numbers(
    text: str,
    start_at: int = 1,
    padding: int | None = None,
    exclude_empty_lines: bool = False,
) -> str:
    """Prefix every line with its bracketed, zero-padded line number.

    Args:
        text: Text to number (CRLF is normalized to LF)
        start_at: Number of the first line (e.g. 500 for a paginated read)
        padding: Fixed marker width; defaults to the digit count of the
            highest line number in this buffer, recomputed on every call
        exclude_empty_lines: Leave whitespace-only lines unnumbered

    Returns:
        Line-numbered text. Lines already carrying their exact expected
        marker are left untouched, which makes the operation idempotent.
    """
    if not text:
        return text

    normalized = normalize_line_endings(text)
    lines = split_lines(normalized)
    width = padding if padding is not None else marker_width(start_at, len(lines))

    numbered: list[str] = []
    for offset, line in enumerate(lines):
        if exclude_empty_lines and not line.strip():
            numbered.append(line)
            continue
        marker = format_marker(start_at + offset, width)
        numbered.append(line if line.startswith(marker) else f"{marker}{line}")

    result = "\n".join(numbered)
    if normalized.endswith("\n"):
        result += "\n"
    return result


def strip_line_numbers(text: str) -> str:
    """Remove one leading ``[digits]`` marker from every line."""
    if not text:
        return text
    return LINE_MARKER_PATTERN.sub("", text)


def get_fragment(
    text: str,
    start_line: int,
    end_line: int,
    include_line_numbers: bool = False,
    trim_empty_lines: bool = False,
) -> str:
    """Return the inclusive, 1-based line range ``[start_line, end_line]``.

    ``start_line`` is clamped to 1 and ``end_line`` to ``start_line``. An
    ``end_line`` past the end of the text is not an error here; callers that
    need a strict bound validate it first.
    """
    if not text:
        return text
    start_line = max(start_line, 1)
    end_line = max(end_line, start_line)

    fragment = split_lines(text)[start_line - 1 : end_line]
    if trim_empty_lines:
        fragment = [line for line in fragment if line.strip()]

    joined = "\n".join(fragment)
    if include_line_numbers:
        return add_line_numbers(joined, start_at=start_line)
    return joined


@dataclass(frozen=True)
class LineIndexedText:
    """A buffer numbered from line 1 with a fixed marker width.

    Created on demand from raw text, never persisted. ``lines`` holds the
    numbered lines (marker included) in order.
    """

    text: str
    lines: tuple[str, ...]
    width: int
    trailing_newline: bool

    @classmethod
    def from_text(cls, raw: str) -> LineIndexedText:
        # Always prefix, even when a line already looks numbered: a source line
        # such as "[2]..." on line 2 must come back unchanged after stripping.
        normalized = normalize_line_endings(raw)
        plain_lines = split_lines(normalized)
        width = marker_width(1, len(plain_lines))
        lines = tuple(
            f"{format_marker(number, width)}{line}"
            for number, line in enumerate(plain_lines, start=1)
        )
        trailing_newline = normalized.endswith("\n")
        text = "\n".join(lines) + ("\n" if trailing_newline and lines else "")
        return cls(text=text, lines=lines, width=width, trailing_newline=trailing_newline)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def marker(self, line_number: int) -> str:
        return format_marker(line_number, self.width)

    def fragment(self, start_line: int, end_line: int) -> str:
        """Numbered fragment for an inclusive 1-based range."""
        return get_fragment(self.text, start_line, end_line)

    def plain(self) -> str:
        return strip_line_numbers(self.text)
