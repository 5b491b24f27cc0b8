"""
patch_engine: parse unified diffs and apply them safely.

Public API for library usage::

    from patch_engine import parse, apply, apply_all, apply_diff

    patches = parse(diff_text)                     # list[Patch]
    new_text = apply(patches[0], old_text)         # str
    report = apply_all(patches, LocalFileStore("."))
    report = apply_diff(diff_text, root=".")       # parse + apply_all
"""

from .api import apply_diff
from .editing import (
    ErrorKind, ParseError, ApplyError, FileStoreError,
    Patch, Hunk, PatchLine, ApplyResult, ApplyStatus, BatchReport, BatchOutcome,
    LocalFileStore, MemoryFileStore, DryRunFileStore,
    parse, apply, apply_all,
)

__all__ = [
    "apply_diff", "parse", "apply", "apply_all",
    "ErrorKind", "ParseError", "ApplyError", "FileStoreError",
    "Patch", "Hunk", "PatchLine", "ApplyResult", "ApplyStatus",
    "BatchReport", "BatchOutcome",
    "LocalFileStore", "MemoryFileStore", "DryRunFileStore",
]
