"""SEARCH/REPLACE change blocks — parsing, application, review and hunk
attribution."""

from .diff_parser import (
    DiffParser, ParseResult, ChangeBlock, BlockStatus, ResponseType,
    parse_diff_blocks, has_diff_blocks, strip_fenced_samples,
    clean_diff_artifacts, strip_code_blocks, extract_code_from_response,
    detect_response_type,
)
from .stats import BlockStats, DiffPart, line_diff, compute_block_stats, compute_stats
from .patch_applier import (
    PatchApplier, ApplyResult, apply_diff, has_applicable_diff_blocks,
    preview_blocks, extract_display_code, process_diff_response,
)
from .block_state import ReviewSession, BlockStateError, transition, restore_decisions
from .hunks import (
    StructuralHunk, HunkAttribution, compute_structural_hunks,
    is_attributable, reconcile_hunks, revert_hunk, accept_hunk,
)
from .metrics import log_apply_metric, read_apply_stats

__all__ = [
    "DiffParser", "ParseResult", "ChangeBlock", "BlockStatus", "ResponseType",
    "parse_diff_blocks", "has_diff_blocks", "strip_fenced_samples",
    "clean_diff_artifacts", "strip_code_blocks", "extract_code_from_response",
    "detect_response_type",
    "BlockStats", "DiffPart", "line_diff", "compute_block_stats", "compute_stats",
    "PatchApplier", "ApplyResult", "apply_diff", "has_applicable_diff_blocks",
    "preview_blocks", "extract_display_code", "process_diff_response",
    "ReviewSession", "BlockStateError", "transition", "restore_decisions",
    "StructuralHunk", "HunkAttribution", "compute_structural_hunks",
    "is_attributable", "reconcile_hunks", "revert_hunk", "accept_hunk",
    "log_apply_metric", "read_apply_stats",
]
