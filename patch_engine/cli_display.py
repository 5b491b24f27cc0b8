import logging
import os
from datetime import datetime

from .editing.models import ApplyStatus, BatchReport


ICONS = {
    ApplyStatus.APPLIED: "✔",
    ApplyStatus.FAILED: "✘",
    ApplyStatus.SKIPPED: "–",
}


def setup_logger(log_dir: str = ".patch_engine/logs") -> logging.Logger:
    """Creates a file logger. All verbose output goes here."""
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"patch_{timestamp}.log")

    logger = logging.getLogger("patch_engine")
    logger.setLevel(logging.DEBUG)

    # File handler: captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    return logger


def format_summary(report: BatchReport) -> str:
    """Render one line per file plus the "N of M files patched" footer."""
    lines = []
    for result in report.results:
        icon = ICONS[result.status]
        line = f"  {icon} {result.file_path}"
        if result.status is ApplyStatus.APPLIED:
            line += f"  ({result.hunks_applied} hunk(s))"
        elif result.reason is not None:
            line += f"  [{result.reason.value}]"
        lines.append(line)
        if result.status is ApplyStatus.FAILED and result.message:
            lines.append(f"      {result.message}")
    lines.append("")
    lines.append(f"  {report.summary()}")
    return "\n".join(lines)


def print_summary(report: BatchReport) -> None:
    print(format_summary(report))
