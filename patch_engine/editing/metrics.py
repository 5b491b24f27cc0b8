"""
Tracks patch outcomes in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

from .models import ApplyStatus, BatchReport

logger = logging.getLogger(__name__)

_METRICS_DIR = ".patch_engine/metrics"
_METRICS_FILE = "apply_metrics.jsonl"


def _metrics_path(project_root: str | None = None,
                  metrics_dir: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, metrics_dir or _METRICS_DIR, _METRICS_FILE)


def log_apply_metrics(
    report: BatchReport,
    project_root: str | None = None,
    metrics_dir: str | None = None,
) -> int:
    """Append one entry per file in *report* to the JSONL log.

    Returns the number of entries written (0 if the log is unwritable).
    """
    path = _metrics_path(project_root, metrics_dir)
    timestamp = datetime.now(timezone.utc).isoformat()
    lines = []
    for result in report.results:
        entry = {"timestamp": timestamp, "dry_run": report.dry_run}
        entry.update(result.to_dict())
        lines.append(json.dumps(entry) + "\n")

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError as exc:
        logger.warning("[Patch] Failed to write metrics: %s", exc)
        return 0
    return len(lines)


def read_apply_stats(
    last_n: int = 200,
    project_root: str | None = None,
    metrics_dir: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Parameters
    ----------
    last_n:
        Number of most-recent entries to include.
    project_root:
        Optional project root directory.  Defaults to CWD.

    Returns
    -------
    dict
        ``total_files``, ``success_rate``, ``failure_rate`` (percentages)
        and ``failure_reasons`` (reason -> count).
    """
    path = _metrics_path(project_root, metrics_dir)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError as exc:
            logger.warning("[Patch] Failed to read metrics: %s", exc)

    entries = entries[-last_n:]

    if not entries:
        return {
            "total_files": 0,
            "success_rate": 0.0,
            "failure_rate": 0.0,
            "failure_reasons": {},
        }

    total = len(entries)
    failed = [e for e in entries if e.get("status") == ApplyStatus.FAILED.value]
    reasons = Counter(e.get("reason") or "unknown" for e in failed)

    return {
        "total_files": total,
        "success_rate": (total - len(failed)) / total * 100,
        "failure_rate": len(failed) / total * 100,
        "failure_reasons": dict(reasons.most_common()),
    }
