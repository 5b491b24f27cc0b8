"""
Error taxonomy for the patch engine.

Parse errors are raised before any file is touched, apply errors before any
write, and file-store errors from the write step.  The batch orchestrator is
the only place that catches them and folds them into per-file results.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-readable reason attached to a failed or skipped file."""
    MALFORMED_HEADER = "malformed_header"
    MALFORMED_LINE = "malformed_line"
    HUNK_COUNT_MISMATCH = "hunk_count_mismatch"
    OVERLAPPING_HUNKS = "overlapping_hunks"
    FILE_NOT_FOUND = "file_not_found"
    UNEXPECTED_EXISTING_FILE = "unexpected_existing_file"
    CONTEXT_MISMATCH = "context_mismatch"
    IO_ERROR = "io_error"
    SYNTAX_ERROR = "syntax_error"
    CANCELLED = "cancelled"


class PatchEngineError(Exception):
    """Base class for every error the engine raises."""

    kind: ErrorKind

    def __init__(self, kind: ErrorKind, message: str,
                 file_path: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.file_path = file_path


# ----------------------------------------------------------------------
# Parse errors
# ----------------------------------------------------------------------

class ParseError(PatchEngineError):
    """Raised when diff text does not follow the unified-diff grammar."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        file_path: str | None = None,
        hunk_index: int | None = None,
        line_number: int | None = None,
        text: str | None = None,
    ) -> None:
        super().__init__(kind, message, file_path)
        self.hunk_index = hunk_index
        self.line_number = line_number   # 1-based line within the diff text
        self.text = text                 # offending line or hunk header


class MalformedHeader(ParseError):
    def __init__(self, message: str, **kwargs) -> None:
        super().__init__(ErrorKind.MALFORMED_HEADER, message, **kwargs)


class MalformedLine(ParseError):
    def __init__(self, message: str, **kwargs) -> None:
        super().__init__(ErrorKind.MALFORMED_LINE, message, **kwargs)


class HunkCountMismatch(ParseError):
    def __init__(self, message: str, **kwargs) -> None:
        super().__init__(ErrorKind.HUNK_COUNT_MISMATCH, message, **kwargs)


class OverlappingHunks(ParseError):
    def __init__(self, message: str, **kwargs) -> None:
        super().__init__(ErrorKind.OVERLAPPING_HUNKS, message, **kwargs)


# ----------------------------------------------------------------------
# Apply errors
# ----------------------------------------------------------------------

class ApplyError(PatchEngineError):
    """Raised when a parsed patch cannot be applied to the given content."""


class FileNotFound(ApplyError):
    def __init__(self, file_path: str) -> None:
        super().__init__(
            ErrorKind.FILE_NOT_FOUND,
            f"{file_path}: file does not exist",
            file_path,
        )


class UnexpectedExistingFile(ApplyError):
    def __init__(self, file_path: str) -> None:
        super().__init__(
            ErrorKind.UNEXPECTED_EXISTING_FILE,
            f"{file_path}: patch creates the file but it already has content",
            file_path,
        )


class ContextMismatch(ApplyError):
    """A Context or Deletion line disagrees with the current file content."""

    def __init__(
        self,
        file_path: str,
        hunk_index: int,
        line_number: int,
        expected_line: Optional[str],
        actual_line: Optional[str],
    ) -> None:
        if expected_line is None and actual_line is None:
            detail = "hunk starts past end of file"
        elif actual_line is None:
            detail = f"expected {expected_line!r}, found end of file"
        elif expected_line is None:
            detail = f"expected end of file, found {actual_line!r}"
        else:
            detail = f"expected {expected_line!r}, found {actual_line!r}"
        super().__init__(
            ErrorKind.CONTEXT_MISMATCH,
            f"{file_path}: hunk #{hunk_index} does not match at line "
            f"{line_number}: {detail}",
            file_path,
        )
        self.hunk_index = hunk_index
        self.line_number = line_number
        self.expected_line = expected_line
        self.actual_line = actual_line


class SyntaxCheckFailed(ApplyError):
    def __init__(self, file_path: str, detail: str) -> None:
        super().__init__(
            ErrorKind.SYNTAX_ERROR,
            f"{file_path}: patched content has syntax errors ({detail})",
            file_path,
        )
        self.detail = detail


# ----------------------------------------------------------------------
# File store errors
# ----------------------------------------------------------------------

class FileStoreError(PatchEngineError):
    """Raised by a file store when a read, write or delete fails."""

    def __init__(self, message: str, file_path: str | None = None) -> None:
        super().__init__(ErrorKind.IO_ERROR, message, file_path)
