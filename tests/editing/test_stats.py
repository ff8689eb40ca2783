"""Tests for block statistics."""

import pytest

from diffblocks.editing.diff_parser import BlockStatus, ChangeBlock
from diffblocks.editing.stats import (
    BlockStats,
    compute_block_stats,
    compute_stats,
    line_diff,
)


class TestLineDiff:
    def test_equal_texts(self):
        parts = line_diff("a\nb", "a\nb")

        assert len(parts) == 1
        assert not parts[0].added and not parts[0].removed
        assert parts[0].lines == ["a", "b"]

    def test_replace_emits_removed_then_added(self):
        parts = line_diff("a\nb\nc", "a\nX\nc")

        assert [(p.added, p.removed, p.lines) for p in parts] == [
            (False, False, ["a"]),
            (False, True, ["b"]),
            (True, False, ["X"]),
            (False, False, ["c"]),
        ]

    def test_repeated_lines_keep_longest_common_subsequence(self):
        parts = line_diff("c\nb\na\nc\nb", "a\nb\nc")

        kept = sum(len(p.lines) for p in parts if not p.added and not p.removed)
        removed = sum(len(p.lines) for p in parts if p.removed)
        added = sum(len(p.lines) for p in parts if p.added)
        assert (kept, removed, added) == (2, 3, 1)

    def test_repeated_closing_lines(self):
        before = "If A Then\n    X();\nEndIf;\nIf B Then\n    Y();\nEndIf;"
        after = "If B Then\n    Y();\nEndIf;"

        parts = line_diff(before, after)

        assert sum(len(p.lines) for p in parts if p.removed) == 3
        assert not any(p.added for p in parts)

    def test_last_line_without_newline_matches(self):
        parts = line_diff("a\nb", "b\na\nb\n")

        assert [p.lines for p in parts if p.added] == [["b"]]
        assert not any(p.removed for p in parts)

    def test_trailing_newline_is_not_a_line(self):
        parts = line_diff("a\n", "a\nb\n")

        added = [p for p in parts if p.added]
        assert len(added) == 1
        assert added[0].lines == ["b"]


class TestComputeBlockStats:
    def test_one_line_replacement_is_modified(self):
        stats = compute_block_stats("a\nb\nc", "a\nX\nc")
        assert stats == BlockStats(added=0, removed=0, modified=1)

    def test_pure_insertion(self):
        stats = compute_block_stats("", "x\ny\nz")
        assert stats == BlockStats(added=3, removed=0, modified=0)

    def test_pure_removal(self):
        stats = compute_block_stats("x\ny", "")
        assert stats == BlockStats(added=0, removed=2, modified=0)

    def test_inserted_line_inside_block(self):
        stats = compute_block_stats(
            "Procedure Foo()\nEndProcedure",
            'Procedure Foo()\n    Message("hi");\nEndProcedure',
        )
        assert stats == BlockStats(added=1, removed=0, modified=0)

    @pytest.mark.parametrize("before, after, expected", [
        ("a\nb", "x\ny\nz", BlockStats(added=1, removed=0, modified=2)),
        ("a\nb\nc", "x", BlockStats(added=0, removed=2, modified=1)),
        ("same", "same", BlockStats()),
        ("c\nb\na\nc\nb", "a\nb\nc", BlockStats(added=0, removed=2, modified=1)),
    ])
    def test_net_counts(self, before, after, expected):
        assert compute_block_stats(before, after) == expected


class TestAggregateStats:
    def _block(self, index, stats, status=BlockStatus.PENDING):
        return ChangeBlock(
            search_text="s", replace_text="r", index=index,
            status=status, stats=stats,
        )

    def test_sums_non_rejected(self):
        blocks = [
            self._block(0, BlockStats(added=1)),
            self._block(1, BlockStats(modified=2), BlockStatus.CONFIRMED),
            self._block(2, BlockStats(removed=5), BlockStatus.REJECTED),
        ]

        assert compute_stats(blocks) == BlockStats(added=1, removed=0, modified=2)

    def test_empty(self):
        total = compute_stats([])
        assert total.is_empty
        assert total.as_dict() == {"added": 0, "removed": 0, "modified": 0}
