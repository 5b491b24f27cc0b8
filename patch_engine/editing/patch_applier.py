"""
Patch applier: applies a parsed ``Patch`` to file content in memory.

Hunks are applied in ascending original order against one progressively
mutated line buffer.  Each hunk's position is re-derived from its original
line number plus the running line delta of everything applied before it, and
every Context and Deletion line is verified against the buffer.  Any mismatch
aborts the whole file: callers get either the fully patched text or an
exception, never a partial edit.
"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import (
    ContextMismatch, FileNotFound, SyntaxCheckFailed, UnexpectedExistingFile,
)
from .models import LineKind, Patch
from .syntax_check import check_syntax

logger = logging.getLogger(__name__)


def detect_newline(content: str) -> str:
    """Return the dominant line terminator of *content* (``\\r\\n`` or ``\\n``)."""
    crlf = content.count("\r\n")
    return "\r\n" if crlf and crlf >= content.count("\n") - crlf else "\n"


def split_lines(content: str) -> tuple[list[list[str]], bool]:
    """Split *content* into ``[text, terminator]`` pairs.

    Each line keeps its own terminator, so files that mix ``\\r\\n`` and
    ``\\n`` survive unchanged.  The flag reports whether *content* ends with
    a line terminator.
    """
    if content == "":
        return [], True
    parts = content.split("\n")
    trailing = parts[-1] == ""
    if trailing:
        parts.pop()
    lines: list[list[str]] = []
    for idx, part in enumerate(parts):
        if not trailing and idx == len(parts) - 1:
            lines.append([part, ""])
        elif part.endswith("\r"):
            lines.append([part[:-1], "\r\n"])
        else:
            lines.append([part, "\n"])
    return lines, trailing


def join_lines(lines: list[list[str]], newline: str, trailing: bool) -> str:
    """Rejoin ``[text, terminator]`` pairs; lines without one get *newline*."""
    if not lines:
        return ""
    out: list[str] = []
    last = len(lines) - 1
    for idx, (text, eol) in enumerate(lines):
        if idx == last and not trailing:
            out.append(text)
        else:
            out.append(text + (eol or newline))
    return "".join(out)


class PatchApplier:
    """Apply ``Patch`` records to in-memory file content."""

    def __init__(self, validate_syntax: bool = False) -> None:
        self._validate_syntax = validate_syntax

    def apply(self, patch: Patch, original: Optional[str]) -> str:
        """Return *original* with every hunk of *patch* applied.

        Parameters
        ----------
        patch:
            The parsed patch for one file.
        original:
            Current content of the target file, or ``None`` when the file
            does not exist.

        Raises
        ------
        FileNotFound
            The patch edits an existing file but *original* is ``None``.
        UnexpectedExistingFile
            The patch creates a file that already has content.
        ContextMismatch
            A Context or Deletion line disagrees with the content.
        SyntaxCheckFailed
            Syntax validation is enabled and the result does not parse.
        """
        if patch.is_noop:
            return original if original is not None else ""

        if patch.is_new_file:
            if original:
                raise UnexpectedExistingFile(patch.file_path)
            content = self._build_new_file(patch)
        else:
            if original is None:
                raise FileNotFound(patch.file_path)
            content = self._apply_hunks(patch, original)

        if self._validate_syntax and not patch.is_deleted_file:
            problem = check_syntax(patch.file_path, content)
            if problem:
                raise SyntaxCheckFailed(patch.file_path, problem)
        return content

    # ------------------------------------------------------------------
    # New files
    # ------------------------------------------------------------------

    @staticmethod
    def _build_new_file(patch: Patch) -> str:
        lines: list[list[str]] = []
        trailing = True
        for hunk in patch.hunks:
            lines.extend([text, "\n"] for text in hunk.new_lines)
            eof = hunk.eof_newline()
            if eof is not None:
                trailing = eof
        logger.debug(
            "[Patch] %s: creating file with %d line(s)",
            patch.file_path, len(lines),
        )
        return join_lines(lines, "\n", trailing)

    # ------------------------------------------------------------------
    # Existing files
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_hunks(patch: Patch, original: str) -> str:
        newline = detect_newline(original)
        buffer, trailing = split_lines(original)
        delta = 0

        hunks = sorted(patch.hunks, key=lambda h: h.old_index)
        for number, hunk in enumerate(hunks, start=1):
            cursor = hunk.old_index + delta
            if cursor > len(buffer):
                raise ContextMismatch(
                    patch.file_path, number, hunk.old_index + 1, None, None,
                )

            for line in hunk.lines:
                if line.kind is LineKind.NO_NEWLINE:
                    continue
                if line.kind is LineKind.ADDITION:
                    buffer.insert(cursor, [line.text, newline])
                    cursor += 1
                    delta += 1
                    continue

                actual = buffer[cursor][0] if cursor < len(buffer) else None
                if actual != line.text:
                    # cursor - delta maps the buffer position back onto the
                    # original file's numbering.
                    raise ContextMismatch(
                        patch.file_path, number, cursor - delta + 1,
                        line.text, actual,
                    )
                if line.kind is LineKind.CONTEXT:
                    cursor += 1
                else:
                    del buffer[cursor]
                    delta -= 1

            eof = hunk.eof_newline()
            if eof is not None:
                trailing = eof
            logger.debug(
                "[Patch] %s: hunk #%d applied (delta now %+d)",
                patch.file_path, number, delta,
            )

        if patch.is_deleted_file:
            if buffer:
                raise ContextMismatch(
                    patch.file_path, len(hunks), hunks[-1].old_end + 1,
                    None, buffer[0][0],
                )
            return ""
        return join_lines(buffer, newline, trailing)


def apply(patch: Patch, original: Optional[str]) -> str:
    """Apply *patch* to *original* with a default ``PatchApplier``."""
    return PatchApplier().apply(patch, original)
