"""
Patch applier — applies parsed change blocks to an in-memory code buffer
by exact substring replacement, skipping blocks whose anchor is missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Sequence, Union

from .diff_parser import (
    DEFAULT_CODE_LANGUAGES,
    BlockStatus,
    ChangeBlock,
    code_fence_pattern,
    clean_diff_artifacts,
    has_diff_blocks,
    normalize_line_endings,
    parse_diff_blocks,
)

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 50


@dataclass
class ApplyResult:
    """Result of applying a batch of change blocks to one buffer."""
    content: str = ""
    applied: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)
    changed: bool = False

    @property
    def success(self) -> bool:
        return not self.skipped

    @property
    def attempted(self) -> int:
        return len(self.applied) + len(self.skipped)


class PatchApplier:
    """Apply change blocks sequentially to a code buffer."""

    def apply(
        self,
        buffer: str,
        blocks: Sequence[ChangeBlock],
        selected_indices: Optional[Iterable[int]] = None,
    ) -> ApplyResult:
        """Apply eligible *blocks* to *buffer* in index order.

        Parameters
        ----------
        buffer:
            The current code buffer. Never modified.
        blocks:
            Parsed change blocks.
        selected_indices:
            When given, only blocks whose ``index`` is listed are applied
            (regardless of status). Otherwise every non-rejected block is.

        Returns
        -------
        ApplyResult
            The new buffer plus the indices that were applied or skipped.
            If nothing was applied, ``content`` is *buffer* unchanged.
        """
        result = ApplyResult(content=buffer)
        eligible = self._eligible(blocks, selected_indices)
        if not eligible:
            return result

        working = normalize_line_endings(buffer)

        for block in eligible:
            search = normalize_line_endings(block.search_text)
            replace = normalize_line_endings(block.replace_text)

            if not search or search not in working:
                result.skipped.append(block.index)
                result.diagnostics.append(
                    f"Block #{block.index}: search text not found"
                    + (f" (line {block.line_hint})" if block.line_hint else "")
                    + f": {search[:_PREVIEW_CHARS]!r}"
                )
                logger.warning(
                    "[DiffBlocks] Could not locate block %d, skipping: %r",
                    block.index, search[:_PREVIEW_CHARS],
                )
                continue

            working = working.replace(search, replace, 1)
            result.applied.append(block.index)

        if result.applied:
            result.content = working
            result.changed = working != buffer

        logger.debug(
            "[DiffBlocks] Applied %d block(s), skipped %d",
            len(result.applied), len(result.skipped),
        )
        return result

    @staticmethod
    def _eligible(
        blocks: Sequence[ChangeBlock],
        selected_indices: Optional[Iterable[int]],
    ) -> list[ChangeBlock]:
        if selected_indices is None:
            chosen = [b for b in blocks if b.status != BlockStatus.REJECTED]
        else:
            wanted = set(selected_indices)
            chosen = [b for b in blocks if b.index in wanted]
        return sorted(chosen, key=lambda b: b.index)


def _as_blocks(blocks_or_text: Union[Sequence[ChangeBlock], str]) -> Sequence[ChangeBlock]:
    if isinstance(blocks_or_text, str):
        return parse_diff_blocks(blocks_or_text)
    return blocks_or_text


def apply_diff(
    buffer: str,
    blocks_or_text: Union[Sequence[ChangeBlock], str],
    selected_indices: Optional[Iterable[int]] = None,
) -> str:
    """Apply blocks (or the blocks parsed from a response) and return the
    new buffer."""
    blocks = _as_blocks(blocks_or_text)
    return PatchApplier().apply(buffer, blocks, selected_indices).content


def has_applicable_diff_blocks(buffer: str, text: str) -> bool:
    """True if at least one block in *text* can be located in *buffer*.

    Useful to tell real edits apart from code examples written as prose.
    """
    if not buffer:
        return False
    blocks = parse_diff_blocks(text)
    if not blocks:
        return False

    normalized = normalize_line_endings(buffer)
    return any(
        normalize_line_endings(b.search_text) in normalized for b in blocks
    )


def preview_blocks(
    buffer: str, blocks: Sequence[ChangeBlock],
) -> Iterator[tuple[ChangeBlock, str, str]]:
    """Yield ``(block, before, after)`` for per-block previews.

    The *before* of each block already contains every earlier block that
    has not been rejected, so later previews build on earlier ones.
    """
    applier = PatchApplier()
    current = buffer
    for block in sorted(blocks, key=lambda b: b.index):
        after = applier.apply(current, [block], [block.index]).content
        yield block, current, after
        if block.status != BlockStatus.REJECTED:
            current = after


def extract_display_code(
    buffer: str,
    text: str,
    languages: Iterable[str] = DEFAULT_CODE_LANGUAGES,
) -> Optional[str]:
    """Code to show in the editor for a response.

    Diff blocks are applied to *buffer*; otherwise the first fenced sample
    of one of *languages* is returned.
    """
    if has_diff_blocks(text):
        return apply_diff(buffer, text)

    match = code_fence_pattern(languages).search(text)
    if match:
        return match.group(1).strip()
    return None


def process_diff_response(buffer: str, text: str, language: str = "bsl") -> str:
    """Render a response as Markdown: the explanation followed by the full
    patched module."""
    explanation = clean_diff_artifacts(text)
    modified = apply_diff(buffer, text)

    parts: list[str] = []
    if explanation:
        parts.append(explanation + "\n\n")

    if modified:
        if explanation:
            parts.append("### Full module code:\n")
        parts.append(f"```{language}\n{modified}\n```")

    return "".join(parts)
