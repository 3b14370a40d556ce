"""Directive parser for loosely structured, tag-delimited edit text.

Model output is rarely well-formed XML: it is wrapped in prose, uses
inconsistent whitespace and tag casing, escapes some characters and not
others, and sometimes embeds code that is not valid markup at all. Rather
than a strict XML parse, segments and fields are located with tolerant,
case-insensitive pattern searches, and anything genuinely unusable is
rejected with a diagnostic naming the segment and field.

Supported dialects:
- Range edits:      <edit><original_line_range>3:4</original_line_range>
                    <new_content>...</new_content></edit>
                    (or <startLine>/<endLine> + <newContent>)
- Anchored inserts: <edit><line_index>5</line_index><before_after>before</before_after>
                    <new_content>...</new_content></edit>
                    (or <insert_after_line>)
- Operations:       <operation type="replace|delete|insert">
                    <range start="2" end="3"/><content><![CDATA[...]]></content>
                    </operation>

CDATA sections are swapped for opaque placeholders before any search, so
their content may contain anything (including closing tags) and is always
taken verbatim.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from .directives import (
    EditDirective,
    InsertAfter,
    InsertAnchored,
    InsertPosition,
    ReplaceRange,
)
from .exceptions import MalformedDirectiveBatchError
from .line_index import normalize_line_endings

logger = logging.getLogger(__name__)

CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
PLACEHOLDER_PATTERN = re.compile(r"\x00CDATA(\d+)\x00")
ATTRIBUTE_PATTERN = re.compile(r"""([\w:.-]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>/]+))""")
INTEGER_PATTERN = re.compile(r"^\s*([+-]?\d+)\s*$")
LINE_RANGE_PATTERN = re.compile(r"^\s*([+-]?\d+)\s*:\s*([+-]?\d+)\s*$")
ENTITY_PATTERN = re.compile(r"&(lt|gt|amp|quot|apos|#\d+|#[xX][0-9a-fA-F]+);")
POSITION_PATTERN = re.compile(r"^\s*(before|after)\b", re.IGNORECASE)

NAMED_ENTITIES = {"lt": "<", "gt": ">", "amp": "&", "quot": '"', "apos": "'"}

# Field name aliases, first name is the one reported in error messages
RANGE_FIELDS = ("original_line_range", "line_range")
START_FIELDS = ("startLine", "start_line")
END_FIELDS = ("endLine", "end_line")
CONTENT_FIELDS = ("newContent", "new_content", "content")
LINE_INDEX_FIELDS = ("line_index", "lineIndex")
INSERT_AFTER_FIELDS = ("insert_after_line", "insertAfterLine")
POSITION_FIELDS = ("before_after", "beforeAfter", "position")
OPERATION_LINE_FIELDS = ("line", "after", "after_line", "insert_after_line")
RANGE_ELEMENTS = ("range", "lines")


def _element_pattern(name: str) -> re.Pattern[str]:
    """Match ``<name attrs>body</name>`` or ``<name attrs/>``, any case and spacing."""
    escaped = re.escape(name)
    return re.compile(
        rf"<\s*{escaped}\b(?P<attrs>[^>]*?)(?:/\s*>|>(?P<body>.*?)<\s*/\s*{escaped}\s*>)",
        re.IGNORECASE | re.DOTALL,
    )


def unescape_entities(text: str) -> str:
    """Unescape the XML entities and numeric character references in ``text``.

    Single pass, so ``&amp;lt;`` becomes ``&lt;`` and not ``<``.
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if not name.startswith("#"):
            return NAMED_ENTITIES[name]
        code = int(name[2:], 16) if name[1] in "xX" else int(name[1:])
        if code > 0x10FFFF:
            return match.group(0)
        return chr(code)

    return ENTITY_PATTERN.sub(replace, text)


def trim_blank_lines(text: str) -> str:
    """Drop leading and trailing whitespace-only lines, keep interior ones."""
    lines = normalize_line_endings(text).split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def parse_attributes(text: str) -> dict[str, str]:
    """Parse ``key="value"`` pairs (any quoting) into a lower-cased dict."""
    attributes: dict[str, str] = {}
    for match in ATTRIBUTE_PATTERN.finditer(text):
        value = next((g for g in match.groups()[1:] if g is not None), "")
        attributes[match.group(1).lower()] = value
    return attributes


class _ProtectedText:
    """Input text with CDATA sections replaced by numbered placeholders."""

    def __init__(self, raw: str, strip_comments: bool = False) -> None:
        self.raw = raw
        self.sections: list[str] = []
        text = CDATA_PATTERN.sub(self._stash, raw)
        if strip_comments:
            text = COMMENT_PATTERN.sub("", text)
        self.text = text

    def _stash(self, match: re.Match[str]) -> str:
        self.sections.append(match.group(1))
        return f"\x00CDATA{len(self.sections) - 1}\x00"

    def restore(self, fragment: str) -> str:
        """Put the original CDATA markup back into a fragment."""
        return PLACEHOLDER_PATTERN.sub(
            lambda m: f"<![CDATA[{self.sections[int(m.group(1))]}]]>", fragment
        )

    def decode(self, fragment: str) -> str:
        """Field value with entities unescaped outside CDATA sections only.

        CDATA sections are spliced back verbatim where they appeared.
        Whitespace-only text around them is layout and is dropped.
        """
        parts = PLACEHOLDER_PATTERN.split(fragment)
        if len(parts) == 1:
            return unescape_entities(fragment)

        # split() alternates text and captured section indices
        pieces: list[str] = []
        for position, part in enumerate(parts):
            if position % 2:
                pieces.append(self.sections[int(part)])
            elif part.strip():
                pieces.append(unescape_entities(part))
        return "".join(pieces)


@dataclass
class _Segment:
    """One ``<edit>`` or ``<operation>`` element found in the input."""

    index: int
    body: str
    attrs: dict[str, str]
    source: _ProtectedText
    markup: str = field(repr=False)

    @property
    def raw(self) -> str:
        return self.source.restore(self.markup)

    def fail(self, reason: str, field_name: str | None = None) -> MalformedDirectiveBatchError:
        return MalformedDirectiveBatchError(
            reason,
            segment_index=self.index,
            field=field_name,
            segment=self.raw,
            raw_input=self.source.raw,
        )

    def find(self, *names: str) -> re.Match[str] | None:
        for name in names:
            match = _element_pattern(name).search(self.body)
            if match:
                return match
        return None

    def has(self, *names: str) -> bool:
        return self.find(*names) is not None

    def text(self, *names: str) -> str | None:
        """Plain text value of the first field found; ``""`` for ``<name/>``."""
        match = self.find(*names)
        if match is None:
            return None
        return self.source.decode(match.group("body") or "")

    def require_int(self, *names: str) -> int:
        value = self.text(*names)
        if value is None:
            raise self.fail(f"missing required field '{names[0]}'", names[0])
        return self.to_int(value, names[0])

    def to_int(self, value: str, field_name: str) -> int:
        match = INTEGER_PATTERN.match(value)
        if not match:
            raise self.fail(
                f"field '{field_name}' must be an integer, got {value.strip()!r}", field_name
            )
        return int(match.group(1))

    def content(self, *names: str) -> str:
        """Content field decoded and trimmed of surrounding blank lines."""
        value = self.text(*names)
        if value is None:
            raise self.fail(f"missing required field '{names[0]}'", names[0])
        return trim_blank_lines(value)


def _find_segments(source: _ProtectedText, tag: str) -> list[_Segment]:
    segments: list[_Segment] = []
    for match in _element_pattern(tag).finditer(source.text):
        segments.append(
            _Segment(
                index=len(segments),
                body=match.group("body") or "",
                attrs=parse_attributes(match.group("attrs")),
                source=source,
                markup=match.group(0),
            )
        )
    return segments


def _require_segments(source: _ProtectedText, tag: str, what: str) -> list[_Segment]:
    segments = _find_segments(source, tag)
    if not segments:
        raise MalformedDirectiveBatchError(
            f"No {what} provided (expected one or more <{tag}> elements)",
            raw_input=source.raw,
        )
    return segments


# ============================================================================
# Range and anchored-insert dialects (<edit> segments)
# ============================================================================


def _is_range_segment(segment: _Segment) -> bool:
    return segment.has(*RANGE_FIELDS, *START_FIELDS, *END_FIELDS)


def _is_insert_segment(segment: _Segment) -> bool:
    return segment.has(*LINE_INDEX_FIELDS, *INSERT_AFTER_FIELDS)


def _parse_range_segment(segment: _Segment) -> ReplaceRange:
    range_value = segment.text(*RANGE_FIELDS)
    if range_value is not None:
        match = LINE_RANGE_PATTERN.match(range_value)
        if not match:
            raise segment.fail(
                f"field '{RANGE_FIELDS[0]}' must be formatted as start:end, "
                f"got {range_value.strip()!r}",
                RANGE_FIELDS[0],
            )
        start_line, end_line = int(match.group(1)), int(match.group(2))
    else:
        start_line = segment.require_int(*START_FIELDS)
        end_line = segment.require_int(*END_FIELDS)

    return ReplaceRange(
        start_line=start_line,
        end_line=end_line,
        new_content=segment.content(*CONTENT_FIELDS),
        segment=segment.index,
    )


def _parse_position(segment: _Segment, value: str) -> InsertPosition:
    match = POSITION_PATTERN.match(value)
    if not match:
        raise segment.fail(
            f"field '{POSITION_FIELDS[0]}' must be 'before' or 'after', got {value.strip()!r}",
            POSITION_FIELDS[0],
        )
    return InsertPosition(match.group(1).lower())


def _parse_insert_segment(segment: _Segment) -> InsertAnchored | InsertAfter:
    content = segment.content(*CONTENT_FIELDS)
    position_value = segment.text(*POSITION_FIELDS)

    if segment.has(*LINE_INDEX_FIELDS):
        anchor_line = segment.require_int(*LINE_INDEX_FIELDS)
        if position_value is None:
            raise segment.fail(
                f"missing required field '{POSITION_FIELDS[0]}'", POSITION_FIELDS[0]
            )
        return InsertAnchored(
            anchor_line=anchor_line,
            position=_parse_position(segment, position_value),
            new_content=content,
            segment=segment.index,
        )

    after_line = segment.require_int(*INSERT_AFTER_FIELDS)
    if position_value is not None:
        return InsertAnchored(
            anchor_line=after_line,
            position=_parse_position(segment, position_value),
            new_content=content,
            segment=segment.index,
        )
    return InsertAfter(after_line=after_line, new_content=content, segment=segment.index)


def _parse_edit_segments(
    text: str,
    segment_parser: Callable[[_Segment], EditDirective],
) -> list[EditDirective]:
    source = _ProtectedText(text)
    segments = _require_segments(source, "edit", "edits")
    directives = [segment_parser(segment) for segment in segments]
    logger.debug(f"Parsed {len(directives)} directives from {len(segments)} edit segments")
    return directives


def parse_range_edits(text: str) -> list[EditDirective]:
    """Parse the range-replace dialect into ReplaceRange directives.

    Raises:
        MalformedDirectiveBatchError: No segment, missing field or bad number
    """

    def parse(segment: _Segment) -> EditDirective:
        if not _is_range_segment(segment):
            raise segment.fail(
                f"missing required field '{RANGE_FIELDS[0]}' "
                f"(or '{START_FIELDS[0]}' and '{END_FIELDS[0]}')",
                RANGE_FIELDS[0],
            )
        return _parse_range_segment(segment)

    return _parse_edit_segments(text, parse)


def parse_insert_edits(text: str) -> list[EditDirective]:
    """Parse the anchored-insert dialect into insertion directives.

    Raises:
        MalformedDirectiveBatchError: No segment, missing field or bad number
    """

    def parse(segment: _Segment) -> EditDirective:
        if not _is_insert_segment(segment):
            raise segment.fail(
                f"missing required field '{LINE_INDEX_FIELDS[0]}' "
                f"(or '{INSERT_AFTER_FIELDS[0]}')",
                LINE_INDEX_FIELDS[0],
            )
        return _parse_insert_segment(segment)

    return _parse_edit_segments(text, parse)


# ============================================================================
# Operation dialect (<operation> segments)
# ============================================================================


def _operation_range(segment: _Segment) -> tuple[int, int]:
    element = segment.find(*RANGE_ELEMENTS)
    attrs = parse_attributes(element.group("attrs")) if element else segment.attrs
    for name in ("start", "end"):
        if name not in attrs:
            raise segment.fail(
                f"missing required attribute '{name}' on <{RANGE_ELEMENTS[0]}>",
                f"{RANGE_ELEMENTS[0]}.{name}",
            )
    start_line = segment.to_int(attrs["start"], f"{RANGE_ELEMENTS[0]}.start")
    end_line = segment.to_int(attrs["end"], f"{RANGE_ELEMENTS[0]}.end")
    return start_line, end_line


def _parse_operation_segment(segment: _Segment) -> list[EditDirective]:
    op_type = segment.attrs.get("type")
    if op_type is None:
        op_type = segment.text("type")
    if op_type is None:
        raise segment.fail("missing required attribute 'type'", "type")
    op_type = op_type.strip().lower()

    if op_type == "delete":
        start_line, end_line = _operation_range(segment)
        return [ReplaceRange(start_line=start_line, end_line=end_line, segment=segment.index)]

    if op_type == "replace":
        start_line, end_line = _operation_range(segment)
        content = segment.content(*CONTENT_FIELDS)
        deletion = ReplaceRange(start_line=start_line, end_line=end_line, segment=segment.index)
        if not content:
            return [deletion]
        # Insert first, anchored to the range start, then delete the range
        insertion = InsertAnchored(
            anchor_line=start_line,
            position=InsertPosition.BEFORE,
            new_content=content,
            segment=segment.index,
        )
        return [insertion, deletion]

    if op_type == "insert":
        content = segment.content(*CONTENT_FIELDS)
        if "after" in segment.attrs:
            after_line = segment.to_int(segment.attrs["after"], "after")
            return [InsertAfter(after_line=after_line, new_content=content, segment=segment.index)]
        if "before" in segment.attrs:
            anchor_line = segment.to_int(segment.attrs["before"], "before")
            return [
                InsertAnchored(
                    anchor_line=anchor_line,
                    position=InsertPosition.BEFORE,
                    new_content=content,
                    segment=segment.index,
                )
            ]
        if not segment.has(*OPERATION_LINE_FIELDS):
            raise segment.fail(
                "missing insert position (an 'after' attribute or a <line> element)", "after"
            )
        after_line = segment.require_int(*OPERATION_LINE_FIELDS)
        return [InsertAfter(after_line=after_line, new_content=content, segment=segment.index)]

    raise segment.fail(
        f"unknown operation type {op_type!r} (expected replace, delete or insert)", "type"
    )


def parse_operations(text: str) -> list[EditDirective]:
    """Parse the operation dialect, expanding each operation into primitives.

    ``replace`` becomes an insertion before the range start followed by a
    deletion of the range; ``delete`` becomes an empty ReplaceRange; ``insert``
    becomes an InsertAfter (or a before-anchored insertion). XML comments
    outside CDATA sections are ignored.

    Raises:
        MalformedDirectiveBatchError: No operation, missing field or bad number
    """
    source = _ProtectedText(text, strip_comments=True)
    segments = _require_segments(source, "operation", "operations")
    directives: list[EditDirective] = []
    for segment in segments:
        directives.extend(_parse_operation_segment(segment))
    logger.debug(f"Parsed {len(directives)} directives from {len(segments)} operations")
    return directives


def parse_directives(text: str) -> list[EditDirective]:
    """Parse any supported dialect, detecting it from the input.

    Operation elements take precedence; otherwise every ``<edit>`` segment is
    parsed as a range edit or an insertion depending on the fields it carries.
    """
    if _find_segments(_ProtectedText(text, strip_comments=True), "operation"):
        return parse_operations(text)

    def parse(segment: _Segment) -> EditDirective:
        if _is_range_segment(segment):
            return _parse_range_segment(segment)
        if _is_insert_segment(segment):
            return _parse_insert_segment(segment)
        raise segment.fail(
            "segment has neither a line range "
            f"('{RANGE_FIELDS[0]}', '{START_FIELDS[0]}'/'{END_FIELDS[0]}') "
            f"nor an insertion line ('{LINE_INDEX_FIELDS[0]}', '{INSERT_AFTER_FIELDS[0]}')",
            RANGE_FIELDS[0],
        )

    return _parse_edit_segments(text, parse)
