"""Tests for the DiffParser."""

import logging

import pytest

from diffblocks.editing.diff_parser import (
    BlockStatus,
    DiffParser,
    ResponseType,
    clean_diff_artifacts,
    detect_response_type,
    extract_code_from_response,
    has_diff_blocks,
    parse_diff_blocks,
    strip_code_blocks,
    strip_fenced_samples,
)


SINGLE_BLOCK = """\
Some explanation.
<<<<<<< SEARCH
Procedure Foo()
EndProcedure
=======
Procedure Foo()
    Message("hi");
EndProcedure
>>>>>>> REPLACE
"""

MULTI_BLOCK = """\
First change:
<<<<<<< SEARCH
:line:3
-------
    Count = 0;
=======
    Count = 1;
>>>>>>> REPLACE

Second change:
<<<<<<< SEARCH
:строка:10
-------
    Return Count;
=======
    Return Count + 1;
>>>>>>> REPLACE

Third change:
<<<<<<< SEARCH
:line:EOF
-------
EndFunction
=======
EndFunction

Procedure Bar()
EndProcedure
>>>>>>> REPLACE
"""

FENCED_EXAMPLE = """\
Use this format for edits:

```
<<<<<<< SEARCH
old code
=======
new code
>>>>>>> REPLACE
```
"""


class TestParse:
    def test_single_block(self):
        blocks = parse_diff_blocks(SINGLE_BLOCK)

        assert len(blocks) == 1
        block = blocks[0]
        assert block.search_text == "Procedure Foo()\nEndProcedure"
        assert block.replace_text == 'Procedure Foo()\n    Message("hi");\nEndProcedure'
        assert block.index == 0
        assert block.status == BlockStatus.PENDING
        assert block.line_hint is None

    def test_sequence_indices_follow_appearance(self):
        blocks = parse_diff_blocks(MULTI_BLOCK)

        assert [b.index for b in blocks] == [0, 1, 2]
        assert blocks[0].search_text == "    Count = 0;"
        assert blocks[1].search_text == "    Return Count;"
        assert blocks[2].search_text == "EndFunction"

    def test_line_headers_are_stripped(self):
        blocks = parse_diff_blocks(MULTI_BLOCK)

        assert blocks[0].line_hint == 3
        assert blocks[1].line_hint == 10
        assert blocks[2].line_hint is None
        assert blocks[2].at_eof is True
        for block in blocks:
            assert ":line:" not in block.search_text
            assert ":строка:" not in block.search_text
            assert not block.search_text.startswith("---")

    def test_header_with_dashes_on_same_line(self):
        text = (
            "<<<<<<< SEARCH\n"
            ":line:7 ----\n"
            "a = 1\n"
            "=======\n"
            "a = 2\n"
            ">>>>>>> REPLACE\n"
        )
        blocks = parse_diff_blocks(text)

        assert len(blocks) == 1
        assert blocks[0].line_hint == 7
        assert blocks[0].search_text == "a = 1"

    def test_indentation_preserved(self):
        text = (
            "<<<<<<< SEARCH\n"
            "    If A Then\n"
            "        B();\n"
            "    EndIf;\n"
            "=======\n"
            "    If A Then\n"
            "        C();\n"
            "    EndIf;\n"
            ">>>>>>> REPLACE"
        )
        block = parse_diff_blocks(text)[0]

        assert block.search_text == "    If A Then\n        B();\n    EndIf;"
        assert block.replace_text == "    If A Then\n        C();\n    EndIf;"

    def test_single_blank_line_trimmed(self):
        text = (
            "<<<<<<< SEARCH\n"
            "\n"
            "x = 1\n"
            "\n"
            "=======\n"
            "\n"
            "x = 2\n"
            "\n"
            ">>>>>>> REPLACE\n"
        )
        block = parse_diff_blocks(text)[0]

        assert block.search_text == "x = 1"
        assert block.replace_text == "x = 2"

    def test_crlf_input(self):
        text = SINGLE_BLOCK.replace("\n", "\r\n")
        blocks = parse_diff_blocks(text)

        assert len(blocks) == 1
        assert blocks[0].search_text == "Procedure Foo()\nEndProcedure"

    def test_empty_replace_is_deletion(self):
        text = "<<<<<<< SEARCH\nobsolete();\n=======\n>>>>>>> REPLACE\n"
        block = parse_diff_blocks(text)[0]

        assert block.search_text == "obsolete();"
        assert block.replace_text == ""
        assert block.stats.removed == 1

    def test_stats_attached(self):
        block = parse_diff_blocks(SINGLE_BLOCK)[0]

        assert block.stats.as_dict() == {"added": 1, "removed": 0, "modified": 0}


class TestEdgeCases:
    @pytest.mark.parametrize("search", ["", "   ", "\n   \n"])
    def test_empty_search_is_dropped(self, search):
        text = f"<<<<<<< SEARCH\n{search}\n=======\nnew code\n>>>>>>> REPLACE\n"

        assert parse_diff_blocks(text) == []

    def test_empty_search_is_logged_and_reported(self, caplog):
        text = (
            "<<<<<<< SEARCH\n=======\nnew\n>>>>>>> REPLACE\n"
            "<<<<<<< SEARCH\nold\n=======\nnew\n>>>>>>> REPLACE\n"
        )
        with caplog.at_level(logging.WARNING):
            result = DiffParser().parse(text)

        assert len(result.blocks) == 1
        assert result.blocks[0].index == 0
        assert len(result.parse_errors) == 1
        assert "Empty SEARCH" in caplog.text

    def test_fenced_sample_is_ignored(self):
        assert parse_diff_blocks(FENCED_EXAMPLE) == []
        assert has_diff_blocks(FENCED_EXAMPLE) is False

    def test_fenced_sample_does_not_hide_real_block(self):
        text = FENCED_EXAMPLE + "\n" + SINGLE_BLOCK
        blocks = parse_diff_blocks(text)

        assert len(blocks) == 1
        assert blocks[0].search_text.startswith("Procedure Foo()")

    def test_incomplete_block_is_inert(self):
        partial = "<<<<<<< SEARCH\nProcedure Foo()\n=======\nProcedure Foo()\n"

        assert parse_diff_blocks(partial) == []
        assert has_diff_blocks(partial) is True

    def test_streaming_prefixes(self):
        """Every prefix parses without error; the full text yields all blocks."""
        counts = [
            len(parse_diff_blocks(MULTI_BLOCK[:end]))
            for end in range(0, len(MULTI_BLOCK) + 1, 7)
        ]
        assert counts == sorted(counts)
        assert len(parse_diff_blocks(MULTI_BLOCK)) == 3

    def test_reparse_is_deterministic(self):
        first = parse_diff_blocks(MULTI_BLOCK)
        second = parse_diff_blocks(MULTI_BLOCK)

        assert first == second

    def test_begin_marker_without_block_is_not_swallowed(self):
        text = "<<<<<<< SEARCH\ndangling\n\n" + SINGLE_BLOCK
        blocks = parse_diff_blocks(text)

        assert len(blocks) == 1
        assert "dangling" not in blocks[0].search_text

    def test_no_markers(self):
        assert parse_diff_blocks("Just a plain answer.") == []
        assert parse_diff_blocks("") == []
        assert has_diff_blocks("") is False


class TestResponseHelpers:
    def test_strip_fenced_samples(self):
        assert strip_fenced_samples("a ```x``` b ```y``` c") == "a  b  c"

    def test_clean_diff_artifacts(self):
        assert clean_diff_artifacts(SINGLE_BLOCK) == "Some explanation."

    def test_strip_code_blocks(self):
        text = "Intro\n```bsl\nA = 1;\n```\n" + SINGLE_BLOCK
        assert strip_code_blocks(text) == "Intro\n\nSome explanation."

    def test_extract_code_from_fence(self):
        text = "Here:\n```bsl\nA = 1;\nB = 2;\n```\n"
        assert extract_code_from_response(text) == "A = 1;\nB = 2;"

    def test_extract_code_returns_diff_text(self):
        assert extract_code_from_response(SINGLE_BLOCK) == SINGLE_BLOCK

    def test_extract_code_none(self):
        assert extract_code_from_response("nothing here") is None

    def test_detect_response_type(self):
        assert detect_response_type(SINGLE_BLOCK) == ResponseType.DIFF
        assert detect_response_type("```bsl\nA = 1;\n```") == ResponseType.FULL
        assert detect_response_type("```1C\nA = 1;\n```") == ResponseType.FULL
        assert detect_response_type("plain text") == ResponseType.UNKNOWN
