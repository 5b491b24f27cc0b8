"""
Batch orchestrator: applies many patches and reports per-file results.

Files are independent: one file's failure never blocks another.  Patches
that target the same path are applied one after another in the order
supplied, since each sees the previous one's output; distinct paths run
concurrently on a bounded thread pool.  Every engine error is caught here and
turned into an ``ApplyResult``, so ``apply_all`` itself never raises for a
per-file problem.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Sequence

from .errors import ErrorKind, PatchEngineError
from .file_store import DryRunFileStore, FileStore
from .models import ApplyResult, ApplyStatus, BatchReport, Patch
from .patch_applier import PatchApplier

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

ProgressCallback = Callable[[int, int, str], None]


class BatchApplier:
    """Apply a collection of patches through a ``FileStore``."""

    def __init__(
        self,
        file_store: FileStore,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        validate_syntax: bool = False,
        dry_run: bool = False,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._dry_run = dry_run
        self._store: FileStore = DryRunFileStore(file_store) if dry_run else file_store
        self._applier = PatchApplier(validate_syntax=validate_syntax)
        self._max_workers = max_workers
        self._cancel = cancel_event or threading.Event()
        self._progress = progress
        self._progress_lock = threading.Lock()
        self._done = 0

    def cancel(self) -> None:
        """Stop starting new patches; in-flight files still finish cleanly."""
        self._cancel.set()

    def apply_all(self, patches: Sequence[Patch]) -> BatchReport:
        """Apply *patches* and return the aggregated report.

        Results come back in the order the patches were supplied.
        """
        patches = list(patches)
        results: list[Optional[ApplyResult]] = [None] * len(patches)
        self._done = 0

        groups: "OrderedDict[str, list[int]]" = OrderedDict()
        for idx, patch in enumerate(patches):
            groups.setdefault(patch.file_path, []).append(idx)

        if groups:
            workers = min(len(groups), self._max_workers)
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self._apply_group, patches, indices, len(patches)): path
                    for path, indices in groups.items()
                }
                try:
                    for future in as_completed(futures):
                        for idx, result in future.result():
                            results[idx] = result
                except BaseException:
                    # e.g. KeyboardInterrupt: unstarted patches are skipped,
                    # in-flight files finish before the pool shuts down.
                    self._cancel.set()
                    raise

        report = BatchReport.from_results(
            results,
            dry_run=self._dry_run,
            changes=self._store.pending if self._dry_run else None,
        )
        logger.info("[Patch] %s (%s)", report.summary(), report.overall.value)
        return report

    # ------------------------------------------------------------------
    # Per-file work
    # ------------------------------------------------------------------

    def _apply_group(self, patches: list[Patch], indices: list[int],
                     total: int) -> list[tuple[int, ApplyResult]]:
        out: list[tuple[int, ApplyResult]] = []
        for idx in indices:
            patch = patches[idx]
            if self._cancel.is_set():
                result = ApplyResult(
                    file_path=patch.file_path,
                    status=ApplyStatus.SKIPPED,
                    reason=ErrorKind.CANCELLED,
                    message="batch cancelled before this patch started",
                )
            else:
                result = self.apply_one(patch)
            out.append((idx, result))
            self._report_progress(total, patch.file_path)
        return out

    def apply_one(self, patch: Patch) -> ApplyResult:
        """Read, patch and write one file; never raises engine errors."""
        if patch.is_noop:
            return ApplyResult(
                file_path=patch.file_path,
                status=ApplyStatus.SKIPPED,
                message="patch has no hunks",
            )

        try:
            original = self._store.read(patch.file_path)
            content = self._applier.apply(patch, original)
            if patch.is_deleted_file:
                self._store.delete(patch.file_path)
            else:
                self._store.write(patch.file_path, content)
        except PatchEngineError as exc:
            logger.warning("[Patch] Failed to apply patch for %s: %s",
                           patch.file_path, exc)
            return ApplyResult(
                file_path=patch.file_path,
                status=ApplyStatus.FAILED,
                reason=exc.kind,
                message=str(exc),
            )
        except OSError as exc:
            # Stores outside this package may leak raw OS errors.
            logger.warning("[Patch] I/O error for %s: %s", patch.file_path, exc)
            return ApplyResult(
                file_path=patch.file_path,
                status=ApplyStatus.FAILED,
                reason=ErrorKind.IO_ERROR,
                message=f"{patch.file_path}: {exc}",
            )

        logger.debug("[Patch] Applied %d hunk(s) to %s",
                     len(patch.hunks), patch.file_path)
        return ApplyResult(
            file_path=patch.file_path,
            status=ApplyStatus.APPLIED,
            hunks_applied=len(patch.hunks),
        )

    def _report_progress(self, total: int, path: str) -> None:
        if self._progress is None:
            return
        with self._progress_lock:
            self._done += 1
            self._progress(self._done, total, path)


def apply_all(
    patches: Sequence[Patch],
    file_store: FileStore,
    **kwargs,
) -> BatchReport:
    """Apply *patches* through *file_store*; see ``BatchApplier`` for options."""
    return BatchApplier(file_store, **kwargs).apply_all(patches)
