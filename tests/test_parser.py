"""Tests for the directive parser."""

import pytest

from linepatch_mcp.engine.directives import (
    InsertAfter,
    InsertAnchored,
    InsertPosition,
    ReplaceRange,
)
from linepatch_mcp.engine.exceptions import MalformedDirectiveBatchError
from linepatch_mcp.engine.parser import (
    parse_directives,
    parse_insert_edits,
    parse_operations,
    parse_range_edits,
    trim_blank_lines,
    unescape_entities,
)


class TestContentDecoding:
    def test_unescape_named_and_numeric_entities(self) -> None:
        text = "a &lt; b &amp;&amp; c&#10;d &#x41;&#39;&quot;&apos;&gt;"
        assert unescape_entities(text) == "a < b && c\nd A'\"'>"

    def test_unescape_is_single_pass(self) -> None:
        assert unescape_entities("&amp;lt;") == "&lt;"

    def test_unknown_entity_is_kept(self) -> None:
        assert unescape_entities("&nbsp;") == "&nbsp;"

    def test_trim_blank_lines_keeps_interior_blank_lines(self) -> None:
        assert trim_blank_lines("\n  \na\n\nb\n  \n") == "a\n\nb"

    def test_trim_blank_lines_keeps_indentation(self) -> None:
        assert trim_blank_lines("\n    indented\n") == "    indented"


class TestRangeEdits:
    def test_original_line_range(self) -> None:
        raw = """
        <edits>
        <edit>
        <original_line_range>2:3</original_line_range>
        <new_content>
X
Y
        </new_content>
        </edit>
        </edits>
        """
        assert parse_range_edits(raw) == [
            ReplaceRange(start_line=2, end_line=3, new_content="X\nY", segment=0)
        ]

    def test_start_and_end_line_fields(self) -> None:
        raw = "<edit><startLine>3</startLine><endLine>4</endLine><newContent>z</newContent></edit>"
        assert parse_range_edits(raw) == [
            ReplaceRange(start_line=3, end_line=4, new_content="z", segment=0)
        ]

    def test_tags_are_case_and_whitespace_tolerant(self) -> None:
        raw = (
            "Sure, here is the edit:\n"
            '<EDIT id="1">\n'
            "  <Start_Line> 3 </Start_Line>\n"
            "  <END_LINE>3</END_LINE>\n"
            "  <New_Content>q</New_Content>\n"
            "</Edit >\n"
            "Let me know if you need more."
        )
        assert parse_range_edits(raw) == [
            ReplaceRange(start_line=3, end_line=3, new_content="q", segment=0)
        ]

    def test_multiple_segments_keep_order_and_index(self) -> None:
        raw = (
            "<edits>"
            "<edit><original_line_range>5:6</original_line_range><new_content>b</new_content></edit>"
            "<edit><original_line_range>1:1</original_line_range><new_content>a</new_content></edit>"
            "</edits>"
        )
        directives = parse_range_edits(raw)
        assert [(d.start_line, d.segment) for d in directives] == [(5, 0), (1, 1)]

    def test_cdata_content_is_verbatim(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range>"
            '<new_content><![CDATA[if a < b && c: print("</edit> &lt;")]]></new_content>'
            "</edit>"
        )
        (directive,) = parse_range_edits(raw)
        assert directive.new_content == 'if a < b && c: print("</edit> &lt;")'

    def test_split_cdata_sections_are_joined(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range>"
            "<new_content><![CDATA[a]]]]><![CDATA[>b]]></new_content></edit>"
        )
        (directive,) = parse_range_edits(raw)
        assert directive.new_content == "a]]>b"

    def test_text_around_cdata_is_kept(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range>"
            "<new_content>x &amp; <![CDATA[<y> &amp;]]> z</new_content></edit>"
        )
        (directive,) = parse_range_edits(raw)
        assert directive.new_content == "x & <y> &amp; z"

    def test_layout_whitespace_around_cdata_is_dropped(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range>\n"
            "  <new_content>\n    <![CDATA[    indented]]>\n  </new_content>\n"
            "</edit>"
        )
        (directive,) = parse_range_edits(raw)
        assert directive.new_content == "    indented"

    def test_entities_are_unescaped_without_cdata(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range>"
            "<new_content>x &lt;= y &amp;&amp; z</new_content></edit>"
        )
        (directive,) = parse_range_edits(raw)
        assert directive.new_content == "x <= y && z"

    def test_self_closing_content_means_delete(self) -> None:
        raw = "<edit><original_line_range>3:3</original_line_range><new_content/></edit>"
        assert parse_range_edits(raw) == [
            ReplaceRange(start_line=3, end_line=3, new_content="", segment=0)
        ]

    def test_missing_content_field(self) -> None:
        raw = "<edit><original_line_range>1:2</original_line_range></edit>"
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.segment_index == 0
        assert exc_info.value.field == "newContent"
        assert exc_info.value.segment == raw
        assert exc_info.value.raw_input == raw

    def test_missing_end_line(self) -> None:
        raw = "<edit><startLine>4</startLine><newContent>x</newContent></edit>"
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.field == "endLine"

    def test_non_numeric_line(self) -> None:
        raw = "<edit><startLine>two</startLine><endLine>3</endLine><newContent>x</newContent></edit>"
        with pytest.raises(MalformedDirectiveBatchError, match="must be an integer") as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.field == "startLine"

    def test_single_number_range_is_not_guessed(self) -> None:
        raw = "<edit><original_line_range>5</original_line_range><new_content>x</new_content></edit>"
        with pytest.raises(MalformedDirectiveBatchError, match="start:end") as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.field == "original_line_range"

    def test_error_names_offending_segment(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range><new_content>a</new_content></edit>"
            "<edit><original_line_range>x:2</original_line_range><new_content>b</new_content></edit>"
        )
        with pytest.raises(MalformedDirectiveBatchError, match=r"edits\[1\]") as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.segment_index == 1

    def test_insert_segment_is_rejected(self) -> None:
        raw = "<edit><insert_after_line>2</insert_after_line><new_content>x</new_content></edit>"
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.field == "original_line_range"

    def test_no_segments(self) -> None:
        raw = "I changed line 3 to say hello."
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_range_edits(raw)
        assert exc_info.value.segment_index is None
        assert f"full value: {raw}" in str(exc_info.value)

    def test_edits_wrapper_alone_is_not_a_segment(self) -> None:
        with pytest.raises(MalformedDirectiveBatchError):
            parse_range_edits("<edits></edits>")


class TestInsertEdits:
    def test_line_index_before(self) -> None:
        raw = (
            "<edit><line_index>5</line_index><before_after>Before</before_after>"
            "<new_content>x</new_content></edit>"
        )
        assert parse_insert_edits(raw) == [
            InsertAnchored(
                anchor_line=5, position=InsertPosition.BEFORE, new_content="x", segment=0
            )
        ]

    def test_before_after_matches_leading_word(self) -> None:
        raw = (
            "<edit><line_index>5</line_index><before_after>after the line</before_after>"
            "<new_content>x</new_content></edit>"
        )
        (directive,) = parse_insert_edits(raw)
        assert directive.position is InsertPosition.AFTER

    def test_insert_after_line(self) -> None:
        raw = "<edit><insert_after_line>7</insert_after_line><new_content>x</new_content></edit>"
        assert parse_insert_edits(raw) == [InsertAfter(after_line=7, new_content="x", segment=0)]

    def test_insert_after_line_with_position(self) -> None:
        raw = (
            "<edit><insert_after_line>7</insert_after_line><before_after>before</before_after>"
            "<new_content>x</new_content></edit>"
        )
        (directive,) = parse_insert_edits(raw)
        assert isinstance(directive, InsertAnchored)
        assert directive.anchor_line == 7
        assert directive.position is InsertPosition.BEFORE

    def test_line_index_requires_position(self) -> None:
        raw = "<edit><line_index>5</line_index><new_content>x</new_content></edit>"
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_insert_edits(raw)
        assert exc_info.value.field == "before_after"

    def test_invalid_position(self) -> None:
        raw = (
            "<edit><line_index>5</line_index><before_after>above</before_after>"
            "<new_content>x</new_content></edit>"
        )
        with pytest.raises(MalformedDirectiveBatchError, match="'before' or 'after'"):
            parse_insert_edits(raw)

    def test_range_segment_is_rejected(self) -> None:
        raw = "<edit><original_line_range>1:2</original_line_range><new_content>x</new_content></edit>"
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_insert_edits(raw)
        assert exc_info.value.field == "line_index"


class TestOperations:
    RAW = """
    <operations>
      <!-- <operation type="delete"><range start="1" end="1"/></operation> -->
      <operation type="replace"><range start="2" end="3"/><content><![CDATA[new]]></content></operation>
      <operation type="delete"><range start="8" end="9"/></operation>
      <operation type="insert" after="12"><content>hello</content></operation>
      <operation type="insert"><line>4</line><content>x</content></operation>
    </operations>
    """

    def test_expansion(self) -> None:
        assert parse_operations(self.RAW) == [
            InsertAnchored(
                anchor_line=2, position=InsertPosition.BEFORE, new_content="new", segment=0
            ),
            ReplaceRange(start_line=2, end_line=3, new_content="", segment=0),
            ReplaceRange(start_line=8, end_line=9, new_content="", segment=1),
            InsertAfter(after_line=12, new_content="hello", segment=2),
            InsertAfter(after_line=4, new_content="x", segment=3),
        ]

    def test_replace_with_empty_content_is_a_delete(self) -> None:
        raw = '<operation type="replace"><range start="2" end="2"/><content></content></operation>'
        assert parse_operations(raw) == [
            ReplaceRange(start_line=2, end_line=2, new_content="", segment=0)
        ]

    def test_insert_before_attribute(self) -> None:
        raw = '<operation type="insert" before="3"><content>x</content></operation>'
        assert parse_operations(raw) == [
            InsertAnchored(
                anchor_line=3, position=InsertPosition.BEFORE, new_content="x", segment=0
            )
        ]

    def test_self_closing_delete(self) -> None:
        raw = "<operation type='delete' start='4' end='5'/>"
        assert parse_operations(raw) == [
            ReplaceRange(start_line=4, end_line=5, new_content="", segment=0)
        ]

    def test_unknown_type(self) -> None:
        raw = '<operation type="move"><range start="1" end="2"/></operation>'
        with pytest.raises(MalformedDirectiveBatchError, match="unknown operation type") as exc_info:
            parse_operations(raw)
        assert exc_info.value.field == "type"

    def test_missing_range(self) -> None:
        raw = '<operation type="delete"></operation>'
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_operations(raw)
        assert exc_info.value.field == "range.start"

    def test_insert_without_position(self) -> None:
        raw = '<operation type="insert"><content>x</content></operation>'
        with pytest.raises(MalformedDirectiveBatchError) as exc_info:
            parse_operations(raw)
        assert exc_info.value.field == "after"

    def test_only_comments(self) -> None:
        with pytest.raises(MalformedDirectiveBatchError, match="No operations provided"):
            parse_operations('<!-- <operation type="delete"/> -->')


class TestParseDirectives:
    def test_mixed_edit_segments(self) -> None:
        raw = (
            "<edit><original_line_range>1:1</original_line_range><new_content>a</new_content></edit>"
            "<edit><insert_after_line>3</insert_after_line><new_content>b</new_content></edit>"
        )
        assert parse_directives(raw) == [
            ReplaceRange(start_line=1, end_line=1, new_content="a", segment=0),
            InsertAfter(after_line=3, new_content="b", segment=1),
        ]

    def test_detects_operations(self) -> None:
        raw = '<operation type="delete"><range start="1" end="1"/></operation>'
        assert parse_directives(raw) == [
            ReplaceRange(start_line=1, end_line=1, new_content="", segment=0)
        ]

    def test_segment_without_lines(self) -> None:
        with pytest.raises(MalformedDirectiveBatchError, match="neither a line range"):
            parse_directives("<edit><new_content>x</new_content></edit>")
