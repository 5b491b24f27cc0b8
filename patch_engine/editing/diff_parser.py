"""
Diff parser: turns unified-diff text into ``Patch`` records.

The parser is pure: no I/O, and every grammar problem (bad headers, stray
lines, hunks whose bodies disagree with their declared counts) is raised
eagerly, before any file is looked at.
"""

from __future__ import annotations

import logging
import re

from .errors import (
    HunkCountMismatch, MalformedHeader, MalformedLine, OverlappingHunks,
)
from .models import Hunk, LineKind, Patch, PatchLine

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"

# Patterns
HUNK_HEADER = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(?: ?(.*))?$"
)
_DEFAULT_PREFIXES = ("a/", "b/")


class _Section:
    """Mutable builder for one ``---``/``+++`` file section."""

    def __init__(self, file_path: str, is_new: bool, is_deleted: bool) -> None:
        self.file_path = file_path
        self.is_new = is_new
        self.is_deleted = is_deleted
        self.hunks: list[Hunk] = []

    def build(self) -> Patch:
        return Patch(
            file_path=self.file_path,
            hunks=tuple(self.hunks),
            is_new_file=self.is_new,
            is_deleted_file=self.is_deleted,
        )


class DiffParser:
    """Parse unified diffs as emitted by ``diff -u`` and ``git diff``."""

    def __init__(self, strip: int | None = None) -> None:
        """
        Parameters
        ----------
        strip:
            Number of leading path components to remove from file names,
            like ``patch -pN``.  ``None`` removes a leading ``a/`` or ``b/``
            when present and leaves other paths alone.
        """
        if strip is not None and strip < 0:
            raise ValueError("strip must be >= 0")
        self._strip = strip

    def parse(self, diff_text: str) -> list[Patch]:
        """Parse *diff_text* into one ``Patch`` per file section.

        Sections naming the same path twice stay separate entries, in the
        order they appear.

        Raises
        ------
        ParseError
            On the first grammar violation found.
        """
        lines = self._split(diff_text)
        patches: list[Patch] = []
        section: _Section | None = None
        i = 0

        while i < len(lines):
            line = lines[i]

            if line.startswith("--- "):
                if i + 1 >= len(lines) or not lines[i + 1].startswith("+++ "):
                    raise MalformedHeader(
                        "'---' line is not followed by a '+++' line",
                        line_number=i + 1, text=line,
                    )
                if section is not None:
                    patches.append(section.build())
                section = self._start_section(line, lines[i + 1], i + 1)
                i += 2
                continue

            if line.startswith("@@"):
                if section is None:
                    raise MalformedHeader(
                        "hunk header before any '---'/'+++' file header",
                        line_number=i + 1, text=line,
                    )
                i = self._read_hunk(lines, i, section)
                continue

            # Preamble text, git extended headers, prose around the diff.
            i += 1

        if section is not None:
            patches.append(section.build())

        logger.debug(
            "[Patch] Parsed %d file section(s), %d hunk(s)",
            len(patches), sum(len(p.hunks) for p in patches),
        )
        return patches

    # ------------------------------------------------------------------
    # File headers
    # ------------------------------------------------------------------

    @staticmethod
    def _split(diff_text: str) -> list[str]:
        lines = diff_text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return [l[:-1] if l.endswith("\r") else l for l in lines]

    def _start_section(self, old_line: str, new_line: str,
                       line_number: int) -> _Section:
        old_path = self._header_path(old_line)
        new_path = self._header_path(new_line)

        if not old_path or not new_path:
            raise MalformedHeader(
                "file header without a path",
                line_number=line_number, text=old_line if not old_path else new_line,
            )
        if old_path == DEV_NULL and new_path == DEV_NULL:
            raise MalformedHeader(
                "both sides of the file header are /dev/null",
                line_number=line_number, text=old_line,
            )

        is_new = old_path == DEV_NULL
        is_deleted = new_path == DEV_NULL
        file_path = self._strip_path(old_path if is_deleted else new_path)
        if not file_path:
            raise MalformedHeader(
                "path is empty after prefix stripping",
                line_number=line_number, text=new_line,
            )
        return _Section(file_path, is_new, is_deleted)

    @staticmethod
    def _header_path(line: str) -> str:
        raw = line[4:].split("\t", 1)[0].strip()
        if len(raw) >= 2 and raw[0] == raw[-1] == '"':
            raw = raw[1:-1]
        return raw

    def _strip_path(self, path: str) -> str:
        if self._strip is None:
            if path.startswith(_DEFAULT_PREFIXES):
                return path[2:]
            return path
        parts = path.split("/")
        if self._strip >= len(parts):
            return parts[-1]
        return "/".join(parts[self._strip:])

    # ------------------------------------------------------------------
    # Hunks
    # ------------------------------------------------------------------

    def _read_hunk(self, lines: list[str], i: int, section: _Section) -> int:
        """Consume the hunk starting at ``lines[i]``; return the next index."""
        header = lines[i]
        hunk_index = len(section.hunks) + 1
        match = HUNK_HEADER.match(header)
        if not match:
            raise MalformedHeader(
                f"invalid hunk header in {section.file_path}",
                file_path=section.file_path, hunk_index=hunk_index,
                line_number=i + 1, text=header,
            )

        old_start = int(match.group(1))
        old_count = int(match.group(2)) if match.group(2) is not None else 1
        new_start = int(match.group(3))
        new_count = int(match.group(4)) if match.group(4) is not None else 1
        section_text = (match.group(5) or "").strip()
        header_line = i + 1

        if (old_start == 0 and old_count > 0) or (new_start == 0 and new_count > 0):
            raise MalformedHeader(
                f"{section.file_path}: hunk #{hunk_index} starts at line 0 "
                f"but is not empty",
                file_path=section.file_path, hunk_index=hunk_index,
                line_number=header_line, text=header,
            )

        def _mismatch(detail: str) -> HunkCountMismatch:
            return HunkCountMismatch(
                f"{section.file_path}: hunk #{hunk_index} {header!r} {detail}",
                file_path=section.file_path, hunk_index=hunk_index,
                line_number=header_line, text=header,
            )

        old_left, new_left = old_count, new_count
        body: list[PatchLine] = []
        i += 1

        while i < len(lines):
            line = lines[i]

            if line.startswith("\\"):
                if not body or body[-1].kind is LineKind.NO_NEWLINE:
                    raise MalformedLine(
                        f"{section.file_path}: no-newline marker does not "
                        f"follow a content line",
                        file_path=section.file_path, hunk_index=hunk_index,
                        line_number=i + 1, text=line,
                    )
                body.append(PatchLine.no_newline())
                i += 1
                continue

            if old_left == 0 and new_left == 0:
                # Body complete; anything diff-shaped that is not the next
                # file section means the header undercounts.
                if line[:1] in (" ", "+", "-") and not self._is_boundary(lines, i):
                    raise _mismatch("has more lines than its header declares")
                break

            if line.startswith("@@"):
                break
            if (
                self._is_boundary(lines, i)
                and not (old_left > 0 and new_left > 0)
            ):
                break

            prefix = line[:1]
            if prefix == " ":
                body.append(PatchLine.context(line[1:]))
                old_left -= 1
                new_left -= 1
            elif prefix == "-":
                body.append(PatchLine.deletion(line[1:]))
                old_left -= 1
            elif prefix == "+":
                body.append(PatchLine.addition(line[1:]))
                new_left -= 1
            elif line == "" and old_left > 0 and new_left > 0:
                # Context line whose trailing space was stripped in transit.
                body.append(PatchLine.context(""))
                old_left -= 1
                new_left -= 1
            else:
                raise MalformedLine(
                    f"{section.file_path}: unexpected line in hunk "
                    f"#{hunk_index}",
                    file_path=section.file_path, hunk_index=hunk_index,
                    line_number=i + 1, text=line,
                )

            if old_left < 0 or new_left < 0:
                raise _mismatch("has more lines than its header declares")
            i += 1

        if old_left or new_left:
            raise _mismatch(
                f"is missing {max(old_left, 0)} old / {max(new_left, 0)} new line(s)"
            )

        hunk = Hunk(
            old_start=old_start,
            old_count=old_count,
            new_start=new_start,
            new_count=new_count,
            lines=tuple(body),
            section=section_text,
        )
        self._check_order(section, hunk, hunk_index, header)
        section.hunks.append(hunk)
        return i

    @staticmethod
    def _is_boundary(lines: list[str], i: int) -> bool:
        return (
            lines[i].startswith("--- ")
            and i + 1 < len(lines)
            and lines[i + 1].startswith("+++ ")
        )

    @staticmethod
    def _check_order(section: _Section, hunk: Hunk, hunk_index: int,
                     header: str) -> None:
        if not section.hunks:
            return
        prev = section.hunks[-1]
        # Pure insertions are zero-width; two of them at one point are ambiguous.
        same_insertion_point = (
            prev.old_count == 0 and hunk.old_count == 0
            and hunk.old_index == prev.old_index
        )
        if hunk.old_index < prev.old_end or same_insertion_point:
            raise OverlappingHunks(
                f"{section.file_path}: hunk #{hunk_index} {header!r} overlaps "
                f"or precedes hunk #{hunk_index - 1} {prev.header!r}",
                file_path=section.file_path, hunk_index=hunk_index,
                text=header,
            )


def parse(diff_text: str, strip: int | None = None) -> list[Patch]:
    """Parse *diff_text* with a default ``DiffParser``."""
    return DiffParser(strip=strip).parse(diff_text)
