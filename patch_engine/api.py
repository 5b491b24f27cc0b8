"""
Programmatic API for using the patch engine as a library from Python code.

Example usage::

    from patch_engine import apply_diff

    report = apply_diff(diff_text, root="path/to/project")
    print(report.summary())          # "2 of 3 files patched, 1 failed"
    for result in report.failed:
        print(result.file_path, result.reason, result.message)
"""

from __future__ import annotations

import logging
import threading

from .config import Config
from .editing.batch import BatchApplier, ProgressCallback
from .editing.diff_parser import DiffParser
from .editing.errors import ParseError
from .editing.file_store import FileStore, LocalFileStore
from .editing.models import ApplyResult, ApplyStatus, BatchReport

_logger = logging.getLogger(__name__)


def parse_failure_report(exc: ParseError, dry_run: bool = False) -> BatchReport:
    """Report for a diff that could not be parsed: nothing was touched."""
    result = ApplyResult(
        file_path=exc.file_path or "<diff>",
        status=ApplyStatus.FAILED,
        reason=exc.kind,
        message=str(exc),
    )
    return BatchReport.from_results([result], dry_run=dry_run)


def apply_diff(
    diff_text: str,
    *,
    root: str = ".",
    file_store: FileStore | None = None,
    dry_run: bool = False,
    max_workers: int | None = None,
    validate_syntax: bool | None = None,
    strip: int | None = None,
    config_path: str | None = None,
    cancel_event: threading.Event | None = None,
    progress: ProgressCallback | None = None,
) -> BatchReport:
    """Parse *diff_text* and apply every file section under *root*.

    Args:
        diff_text: Unified diff, possibly covering several files.
        root: Project directory paths in the diff are relative to.
        file_store: Store to use instead of a ``LocalFileStore(root)``.
        dry_run: Compute results without writing anything.
        max_workers: Files patched concurrently (default: from config).
        validate_syntax: Reject results that fail a tree-sitter parse
            (default: from config).
        strip: Leading path components to drop (default: from config).
        config_path: Explicit ``.patch_engine.yaml`` to load.

    Returns:
        BatchReport: per-file results; never raises for a bad diff or a
        file that fails to apply.
    """
    cfg = Config.load(config_path)
    if strip is None:
        strip = cfg.STRIP

    try:
        patches = DiffParser(strip=strip).parse(diff_text)
    except ParseError as exc:
        _logger.warning("[Patch] Diff rejected: %s", exc)
        return parse_failure_report(exc, dry_run=dry_run)

    applier = BatchApplier(
        file_store or LocalFileStore(root),
        max_workers=max_workers or cfg.MAX_WORKERS,
        validate_syntax=(cfg.VALIDATE_SYNTAX if validate_syntax is None
                         else validate_syntax),
        dry_run=dry_run,
        cancel_event=cancel_event,
        progress=progress,
    )
    return applier.apply_all(patches)
