"""
Apply metrics — records the outcome of each block application in a JSONL
log file.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

from .patch_applier import ApplyResult

logger = logging.getLogger(__name__)

_METRICS_DIR = ".diffblocks/metrics"
_METRICS_FILE = "apply_metrics.jsonl"


def _metrics_path(project_root: str | None = None, metrics_dir: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, metrics_dir or _METRICS_DIR, _METRICS_FILE)


def metric_from_result(result: ApplyResult, **extra) -> dict:
    """Build a metric entry from an ApplyResult."""
    data = {
        "blocks_applied": len(result.applied),
        "blocks_skipped": len(result.skipped),
        "skipped_indices": list(result.skipped),
        "changed": result.changed,
    }
    data.update(extra)
    return data


def log_apply_metric(
    data: dict,
    project_root: str | None = None,
    metrics_dir: str | None = None,
) -> None:
    """Append a single apply metric entry to the JSONL log.

    Parameters
    ----------
    data:
        Metric fields to log (blocks_applied, blocks_skipped, source, etc.).
    project_root:
        Optional project root directory. Defaults to CWD.
    metrics_dir:
        Optional directory relative to *project_root*.
    """
    path = _metrics_path(project_root, metrics_dir)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as exc:
        logger.warning("[DiffBlocks] Failed to write metrics: %s", exc)


def read_apply_stats(
    last_n: int = 50,
    project_root: str | None = None,
    metrics_dir: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Returns
    -------
    dict
        total_applies, avg_blocks, success_rate (no skipped blocks, %),
        skip_rate (skipped / attempted blocks, %).
    """
    path = _metrics_path(project_root, metrics_dir)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.debug("[DiffBlocks] Skipping corrupt metrics line")
        except OSError as exc:
            logger.warning("[DiffBlocks] Failed to read metrics: %s", exc)

    entries = entries[-last_n:]

    if not entries:
        return {
            "total_applies": 0,
            "avg_blocks": 0.0,
            "success_rate": 0.0,
            "skip_rate": 0.0,
        }

    total = len(entries)
    applied = sum(e.get("blocks_applied", 0) for e in entries)
    skipped = sum(e.get("blocks_skipped", 0) for e in entries)
    attempted = applied + skipped
    successes = sum(1 for e in entries if e.get("blocks_skipped", 0) == 0)

    return {
        "total_applies": total,
        "avg_blocks": attempted / total,
        "success_rate": successes / total * 100,
        "skip_rate": skipped / attempted * 100 if attempted else 0.0,
    }
