"""Unified-diff patching: parse diffs, apply them safely, report per file."""

from .errors import (
    ErrorKind, PatchEngineError,
    ParseError, MalformedHeader, MalformedLine, HunkCountMismatch, OverlappingHunks,
    ApplyError, FileNotFound, UnexpectedExistingFile, ContextMismatch,
    SyntaxCheckFailed, FileStoreError,
)
from .models import (
    LineKind, PatchLine, Hunk, Patch,
    ApplyStatus, ApplyResult, BatchOutcome, BatchReport,
)
from .diff_parser import DiffParser, parse
from .patch_applier import PatchApplier, apply
from .file_store import FileStore, LocalFileStore, MemoryFileStore, DryRunFileStore
from .batch import BatchApplier, apply_all
from .metrics import log_apply_metrics, read_apply_stats

__all__ = [
    "ErrorKind", "PatchEngineError",
    "ParseError", "MalformedHeader", "MalformedLine", "HunkCountMismatch",
    "OverlappingHunks",
    "ApplyError", "FileNotFound", "UnexpectedExistingFile", "ContextMismatch",
    "SyntaxCheckFailed", "FileStoreError",
    "LineKind", "PatchLine", "Hunk", "Patch",
    "ApplyStatus", "ApplyResult", "BatchOutcome", "BatchReport",
    "DiffParser", "parse",
    "PatchApplier", "apply",
    "FileStore", "LocalFileStore", "MemoryFileStore", "DryRunFileStore",
    "BatchApplier", "apply_all",
    "log_apply_metrics", "read_apply_stats",
]
