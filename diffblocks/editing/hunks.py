"""
Hunk reconciliation — decides which hunks of a structural line diff were
produced by parsed change blocks, and splices single hunks back and forth
between the baseline and the working buffer.

Hunks use the Monaco ``ILineChange`` convention: line numbers are 1-indexed
and inclusive; an empty side has ``end == 0`` (or ``end < start``) and its
``start`` names the line after which the other side sits (0 = file start).
"""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass
from typing import Sequence

from .diff_parser import ChangeBlock

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class StructuralHunk:
    """One contiguous line-range difference between two buffer snapshots."""
    original_start: int
    original_end: int
    modified_start: int
    modified_end: int

    @property
    def is_insertion(self) -> bool:
        return _is_empty_range(self.original_start, self.original_end)

    @property
    def is_deletion(self) -> bool:
        return _is_empty_range(self.modified_start, self.modified_end)


@dataclass(frozen=True)
class HunkAttribution:
    hunk: StructuralHunk
    attributable: bool


def _is_empty_range(start: int, end: int) -> bool:
    return end == 0 or end < start


def _split(buffer: str) -> list[str]:
    return buffer.split("\n")


def _range_text(lines: list[str], start: int, end: int) -> str:
    if _is_empty_range(start, end):
        return ""
    return "\n".join(lines[max(start - 1, 0):end])


def _strip_whitespace(text: str) -> str:
    return _WHITESPACE.sub("", text)


# ----------------------------------------------------------------------
# Structural diff
# ----------------------------------------------------------------------

def compute_structural_hunks(original: str, working: str) -> list[StructuralHunk]:
    """Line diff of two buffers in the structural hunk convention."""
    old_lines = _split(original)
    new_lines = _split(working)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    hunks: list[StructuralHunk] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        if tag == "insert":
            hunks.append(StructuralHunk(i1, 0, j1 + 1, j2))
        elif tag == "delete":
            hunks.append(StructuralHunk(i1 + 1, i2, j1, 0))
        else:
            hunks.append(StructuralHunk(i1 + 1, i2, j1 + 1, j2))
    return hunks


# ----------------------------------------------------------------------
# Attribution
# ----------------------------------------------------------------------

def is_attributable(
    hunk: StructuralHunk,
    blocks: Sequence[ChangeBlock],
    original: str,
    working: str,
) -> bool:
    """True if at least one block plausibly produced *hunk*.

    Comparison ignores all whitespace. A replaced/deleted range matches a
    block whose search text equals, contains or is contained in the
    range's original text; an inserted range matches a block whose replace
    text contains the inserted text.
    """
    if hunk.is_insertion:
        added = _strip_whitespace(
            _range_text(_split(working), hunk.modified_start, hunk.modified_end)
        )
        return any(added in _strip_whitespace(b.replace_text) for b in blocks)

    removed = _strip_whitespace(
        _range_text(_split(original), hunk.original_start, hunk.original_end)
    )
    for block in blocks:
        search = _strip_whitespace(block.search_text)
        if search == removed or removed in search or search in removed:
            return True
    return False


def reconcile_hunks(
    hunks: Sequence[StructuralHunk],
    blocks: Sequence[ChangeBlock],
    original: str,
    working: str,
) -> list[HunkAttribution]:
    """Classify every hunk independently as block-attributable or not."""
    results = [
        HunkAttribution(hunk, is_attributable(hunk, blocks, original, working))
        for hunk in hunks
    ]
    logger.debug(
        "[DiffBlocks] %d/%d hunk(s) attributable to %d block(s)",
        sum(1 for r in results if r.attributable), len(results), len(blocks),
    )
    return results


# ----------------------------------------------------------------------
# Accept / revert
# ----------------------------------------------------------------------

def _splice(
    target: str,
    target_start: int,
    target_end: int,
    source: str,
    source_start: int,
    source_end: int,
) -> str:
    """Replace a line range of *target* with a line range of *source*."""
    target_lines = _split(target)
    source_lines = _split(source)

    if _is_empty_range(source_start, source_end):
        replacement: list[str] = []
    else:
        replacement = source_lines[max(source_start - 1, 0):source_end]

    if _is_empty_range(target_start, target_end):
        position = target_start if target_end == 0 else target_end
        lo = hi = min(max(position, 0), len(target_lines))
    else:
        lo, hi = target_start - 1, target_end

    return "\n".join(target_lines[:lo] + replacement + target_lines[hi:])


def revert_hunk(working: str, original: str, hunk: StructuralHunk) -> str:
    """Put the baseline lines of *hunk* back into the working buffer."""
    return _splice(
        working, hunk.modified_start, hunk.modified_end,
        original, hunk.original_start, hunk.original_end,
    )


def accept_hunk(original: str, working: str, hunk: StructuralHunk) -> str:
    """Copy the working lines of *hunk* into the baseline buffer."""
    return _splice(
        original, hunk.original_start, hunk.original_end,
        working, hunk.modified_start, hunk.modified_end,
    )
