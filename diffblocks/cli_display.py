import logging
import os
from datetime import datetime

from .editing.diff_parser import BlockStatus, ChangeBlock
from .editing.patch_applier import ApplyResult
from .editing.stats import BlockStats


def setup_logger(log_dir: str = ".diffblocks/logs") -> logging.Logger:
    """Creates a file logger. All verbose output goes here."""
    logger = logging.getLogger("diffblocks")
    logger.setLevel(logging.DEBUG)
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger

    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"diffblocks_{timestamp}.log")

    # File handler — captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    return logger


def close_logger(logger: logging.Logger) -> None:
    """Detach and close the file handlers added by setup_logger."""
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()


ICONS = {
    BlockStatus.PENDING: "○",
    BlockStatus.CONFIRMED: "✔",
    BlockStatus.REJECTED: "✘",
}


def format_stats_banner(stats: BlockStats, block_count: int) -> str:
    """One-line summary, e.g. ``3 change(s): +2 -1 ~4``."""
    return (
        f"{block_count} change(s): "
        f"\033[32m+{stats.added}\033[0m "
        f"\033[31m-{stats.removed}\033[0m "
        f"\033[33m~{stats.modified}\033[0m"
    )


def format_block_line(block: ChangeBlock) -> str:
    icon = ICONS.get(block.status, "?")
    where = f"line {block.line_hint}" if block.line_hint else ("EOF" if block.at_eof else "-")
    s = block.stats
    return (
        f"  {icon} #{block.index:<3} {block.status.value:<9} {where:<10} "
        f"+{s.added} -{s.removed} ~{s.modified}"
    )


def format_apply_result(result: ApplyResult) -> str:
    lines = [f"Applied {len(result.applied)} block(s), skipped {len(result.skipped)}."]
    for message in result.diagnostics:
        lines.append(f"  ! {message}")
    return "\n".join(lines)
