"""
CLI entry point — apply, check and inspect SEARCH/REPLACE responses
against a code buffer stored in a file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from .cli_display import (
    close_logger, format_apply_result, format_block_line, format_stats_banner,
    setup_logger,
)
from .config import Config
from .diff_display import review_blocks
from .editing.block_state import BlockStateError, ReviewSession
from .editing.diff_parser import DiffParser
from .editing.hunks import compute_structural_hunks, reconcile_hunks
from .editing.metrics import log_apply_metric, metric_from_result, read_apply_stats
from .editing.patch_applier import has_applicable_diff_blocks
from .editing.stats import compute_stats

logger = logging.getLogger(__name__)


def _read(path: str) -> str:
    # newline="" keeps \r\n so the applier sees the buffer as the editor does
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_apply(args: argparse.Namespace, config: Config) -> int:
    """Apply a response's blocks to a buffer file."""
    buffer = _read(args.buffer)
    session = ReviewSession(buffer, _read(args.response))

    if not session.blocks:
        print("No change blocks found in response.")
        return 1

    for index in args.exclude or []:
        session.reject(index)

    if args.review:
        use_tui = config.REVIEW_TUI and not args.no_tui
        if not review_blocks(session, use_tui=use_tui):
            print("Cancelled, nothing written.")
            return 1

    if args.only:
        result = session.apply_selected(args.only)
    else:
        result = session.apply_remaining()

    print(format_apply_result(result))

    if config.METRICS_ENABLED:
        log_apply_metric(
            metric_from_result(result, blocks_total=len(session.blocks)),
            metrics_dir=config.METRICS_DIR,
        )

    target = args.output or args.buffer
    if result.changed or args.output:
        _write(target, result.content)
        print(f"Wrote {target}")
    return 0 if result.success else 2


def _cmd_check(args: argparse.Namespace, config: Config) -> int:
    """Report whether any block can be located in the buffer."""
    applicable = has_applicable_diff_blocks(_read(args.buffer), _read(args.response))
    print("applicable" if applicable else "not applicable")
    return 0 if applicable else 1


def _cmd_stats(args: argparse.Namespace, config: Config) -> int:
    """List parsed blocks with their line statistics."""
    parsed = DiffParser().parse(_read(args.response))
    for message in parsed.parse_errors:
        print(f"  ! {message}")
    for block in parsed.blocks:
        print(format_block_line(block))
    print(format_stats_banner(compute_stats(parsed.blocks), len(parsed.blocks)))
    return 0


def _cmd_hunks(args: argparse.Namespace, config: Config) -> int:
    """Show which hunks between two buffers come from the response's blocks."""
    original = _read(args.original)
    working = _read(args.working)
    session = ReviewSession(original, _read(args.response))

    hunks = compute_structural_hunks(original, working)
    for item in reconcile_hunks(hunks, session.blocks, original, working):
        h = item.hunk
        mark = "AI" if item.attributable else "--"
        print(
            f"  [{mark}] original {h.original_start}-{h.original_end}  "
            f"modified {h.modified_start}-{h.modified_end}"
        )
    return 0


def _cmd_apply_stats(args: argparse.Namespace, config: Config) -> int:
    """Show rolling apply statistics."""
    stats = read_apply_stats(last_n=args.last_n, metrics_dir=config.METRICS_DIR)

    if stats["total_applies"] == 0:
        print("No apply metrics found yet.")
        return 0

    print(f"Total applies:   {stats['total_applies']}")
    print(f"Avg blocks:      {stats['avg_blocks']:.1f}")
    print(f"Success rate:    {stats['success_rate']:.0f}%")
    print(f"Skip rate:       {stats['skip_rate']:.0f}%")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diffblocks",
        description="Apply and inspect SEARCH/REPLACE change blocks",
    )
    parser.add_argument("--config", default=None,
                        help="Path to a .diffblocks.yaml config file")
    parser.add_argument("--no-log", action="store_true",
                        help="Do not write a log file")
    subparsers = parser.add_subparsers(dest="cmd", metavar="COMMAND")
    subparsers.required = True

    apply_p = subparsers.add_parser("apply", help="Apply blocks to a buffer file")
    apply_p.add_argument("buffer", help="File holding the code buffer")
    apply_p.add_argument("response", help="File holding the model response")
    apply_p.add_argument("-o", "--output", default=None,
                         help="Write the result here instead of BUFFER")
    apply_p.add_argument("--only", type=int, nargs="+", default=None,
                         help="Apply only these block indices")
    apply_p.add_argument("--exclude", type=int, action="append", default=None,
                         help="Reject this block index (repeatable)")
    apply_p.add_argument("--review", action="store_true",
                         help="Review blocks interactively before applying")
    apply_p.add_argument("--no-tui", action="store_true",
                         help="Use console prompts instead of the Textual viewer")
    apply_p.set_defaults(func=_cmd_apply)

    check_p = subparsers.add_parser(
        "check", help="Check whether a response applies to a buffer")
    check_p.add_argument("buffer")
    check_p.add_argument("response")
    check_p.set_defaults(func=_cmd_check)

    stats_p = subparsers.add_parser("stats", help="Show block statistics")
    stats_p.add_argument("response")
    stats_p.set_defaults(func=_cmd_stats)

    hunks_p = subparsers.add_parser(
        "hunks", help="Attribute diff hunks between two buffers to blocks")
    hunks_p.add_argument("original")
    hunks_p.add_argument("working")
    hunks_p.add_argument("response")
    hunks_p.set_defaults(func=_cmd_hunks)

    astats_p = subparsers.add_parser("apply-stats", help="Show rolling apply statistics")
    astats_p.add_argument("--last-n", type=int, default=50,
                          help="Number of most recent applies (default: 50)")
    astats_p.set_defaults(func=_cmd_apply_stats)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = Config.load(args.config)

    file_logger = None if args.no_log else setup_logger(config.LOG_DIR)

    try:
        return args.func(args, config)
    except (OSError, BlockStateError) as exc:
        logger.error("[DiffBlocks] %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        if file_logger is not None:
            close_logger(file_logger)


if __name__ == "__main__":
    sys.exit(main())
