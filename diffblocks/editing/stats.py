"""
Block statistics — line-level added/removed/modified counts for
search/replace blocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from diff_match_patch import diff_match_patch

if TYPE_CHECKING:
    from .diff_parser import ChangeBlock


@dataclass
class DiffPart:
    """A contiguous run of a line diff."""
    added: bool = False
    removed: bool = False
    lines: list[str] = field(default_factory=list)


@dataclass
class BlockStats:
    """Net line counts for one block (or an aggregate of blocks).

    A 1:1 line replacement counts as *modified*; ``added`` and ``removed``
    only carry the surplus/deficit beyond that.
    """
    added: int = 0
    removed: int = 0
    modified: int = 0

    def __add__(self, other: "BlockStats") -> "BlockStats":
        return BlockStats(
            added=self.added + other.added,
            removed=self.removed + other.removed,
            modified=self.modified + other.modified,
        )

    @property
    def is_empty(self) -> bool:
        return self.added == 0 and self.removed == 0 and self.modified == 0

    def as_dict(self) -> dict:
        return {
            "added": self.added,
            "removed": self.removed,
            "modified": self.modified,
        }


def _split_lines(text: str) -> list[str]:
    if not text:
        return []
    lines = text.split("\n")
    # A final newline yields an empty trailing element, not a real line
    if lines[-1] == "":
        lines.pop()
    return lines


def _as_line_text(text: str) -> str:
    # Every line newline-terminated, so a last line without "\n" still
    # compares equal to the same line elsewhere
    return "".join(line + "\n" for line in _split_lines(text))


def line_diff(before: str, after: str) -> list[DiffPart]:
    """Minimal (longest common subsequence) line diff of *before* against
    *after*.

    Returns runs in document order; where lines are replaced, the removed
    run comes before the added run.
    """
    dmp = diff_match_patch()
    # No timeout: the half-match shortcut is skipped and the result is minimal
    dmp.Diff_Timeout = 0

    chars1, chars2, line_array = dmp.diff_linesToChars(
        _as_line_text(before), _as_line_text(after)
    )
    diffs = dmp.diff_main(chars1, chars2, False)
    dmp.diff_charsToLines(diffs, line_array)

    parts: list[DiffPart] = []
    for op, text in diffs:
        lines = _split_lines(text)
        if not lines:
            continue
        if op == diff_match_patch.DIFF_DELETE:
            parts.append(DiffPart(removed=True, lines=lines))
        elif op == diff_match_patch.DIFF_INSERT:
            parts.append(DiffPart(added=True, lines=lines))
        else:
            parts.append(DiffPart(lines=lines))

    return parts


def compute_block_stats(before: str, after: str) -> BlockStats:
    """Compute net added/removed/modified line counts for one block."""
    added = 0
    removed = 0

    for part in line_diff(before, after):
        if part.added:
            added += len(part.lines)
        elif part.removed:
            removed += len(part.lines)

    modified = min(added, removed)
    return BlockStats(
        added=added - modified,
        removed=removed - modified,
        modified=modified,
    )


def compute_stats(blocks: Iterable["ChangeBlock"]) -> BlockStats:
    """Aggregate the stats of every block that has not been rejected."""
    from .diff_parser import BlockStatus

    total = BlockStats()
    for block in blocks:
        if block.status == BlockStatus.REJECTED:
            continue
        total = total + block.stats
    return total
