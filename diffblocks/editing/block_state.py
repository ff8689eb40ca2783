"""
Block review state — confirm/reject decisions for one parsed batch of
change blocks, and the bulk-apply operations built on them.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .diff_parser import BlockStatus, ChangeBlock, parse_diff_blocks
from .patch_applier import ApplyResult, PatchApplier, preview_blocks
from .stats import BlockStats, compute_stats

logger = logging.getLogger(__name__)


class BlockStateError(ValueError):
    """Raised for an unknown block index or a disallowed transition."""


# pending is only entered at parse time
_ALLOWED = {
    BlockStatus.PENDING: {BlockStatus.CONFIRMED, BlockStatus.REJECTED},
    BlockStatus.CONFIRMED: {BlockStatus.REJECTED},
    BlockStatus.REJECTED: {BlockStatus.CONFIRMED},
}


def transition(current: BlockStatus, target: BlockStatus) -> BlockStatus:
    """Return *target* if the move from *current* is allowed."""
    if current == target:
        return current
    if target not in _ALLOWED[current]:
        raise BlockStateError(
            f"Cannot move block from {current.value} to {target.value}"
        )
    return target


def restore_decisions(
    blocks: list[ChangeBlock],
    decisions: Mapping[int, BlockStatus],
) -> None:
    """Re-apply earlier decisions to freshly parsed blocks, by index."""
    for block in blocks:
        previous = decisions.get(block.index)
        if previous is not None and previous != BlockStatus.PENDING:
            block.status = transition(block.status, previous)


class ReviewSession:
    """Review state for the blocks of one model response against one buffer.

    The session holds the baseline buffer and the response text; blocks are
    reparsed from the whole text whenever it changes.
    """

    def __init__(self, original: str, text: str = "") -> None:
        self.original = original
        self.text = text
        self.blocks: list[ChangeBlock] = parse_diff_blocks(text)
        self._applier = PatchApplier()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def update_text(self, text: str, keep_decisions: bool = True) -> list[ChangeBlock]:
        """Reparse the full accumulated *text* (e.g. after a streamed chunk).

        With *keep_decisions*, confirm/reject decisions carry over to blocks
        with the same index; otherwise every block starts pending again.
        """
        decisions = self.decisions() if keep_decisions else {}
        self.text = text
        self.blocks = parse_diff_blocks(text)
        restore_decisions(self.blocks, decisions)
        return self.blocks

    def decisions(self) -> dict[int, BlockStatus]:
        return {b.index: b.status for b in self.blocks}

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _block(self, index: int) -> ChangeBlock:
        for block in self.blocks:
            if block.index == index:
                return block
        raise BlockStateError(f"No block with index {index}")

    def set_status(self, index: int, status: BlockStatus) -> ChangeBlock:
        block = self._block(index)
        block.status = transition(block.status, status)
        logger.debug("[DiffBlocks] Block %d -> %s", index, block.status.value)
        return block

    def confirm(self, index: int) -> ChangeBlock:
        return self.set_status(index, BlockStatus.CONFIRMED)

    def reject(self, index: int) -> ChangeBlock:
        return self.set_status(index, BlockStatus.REJECTED)

    def toggle(self, index: int) -> ChangeBlock:
        """Flip a decision; a pending block becomes confirmed."""
        block = self._block(index)
        if block.status == BlockStatus.CONFIRMED:
            return self.reject(index)
        return self.confirm(index)

    def reject_all(self) -> None:
        for block in self.blocks:
            block.status = transition(block.status, BlockStatus.REJECTED)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        return sum(1 for b in self.blocks if b.status == BlockStatus.PENDING)

    def eligible_indices(self) -> list[int]:
        """Indices included in "apply remaining": pending and confirmed."""
        return [b.index for b in self.blocks if b.status != BlockStatus.REJECTED]

    def stats(self) -> BlockStats:
        return compute_stats(self.blocks)

    def previews(self) -> list[tuple[ChangeBlock, str, str]]:
        return list(preview_blocks(self.original, self.blocks))

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def apply_remaining(self) -> ApplyResult:
        """Apply every block that has not been rejected."""
        return self._applier.apply(self.original, self.blocks, self.eligible_indices())

    def apply_only(self, index: int) -> ApplyResult:
        self._block(index)
        return self._applier.apply(self.original, self.blocks, [index])

    def apply_all_but(self, index: int) -> ApplyResult:
        self._block(index)
        selected = [i for i in self.eligible_indices() if i != index]
        return self._applier.apply(self.original, self.blocks, selected)

    def apply_selected(self, indices: Optional[list[int]] = None) -> ApplyResult:
        if indices is None:
            return self.apply_remaining()
        return self._applier.apply(self.original, self.blocks, indices)
