"""
Value objects shared by the parser, applier and batch orchestrator.

Everything here is immutable once built: the parser creates ``Patch``
records, the applier only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import ErrorKind


class LineKind(str, Enum):
    """Prefix character of a hunk body line."""
    CONTEXT = " "
    ADDITION = "+"
    DELETION = "-"
    NO_NEWLINE = "\\"


NO_NEWLINE_MARKER = "\\ No newline at end of file"


@dataclass(frozen=True)
class PatchLine:
    """One line of a hunk body, without its prefix character."""
    kind: LineKind
    text: str = ""

    @classmethod
    def context(cls, text: str) -> "PatchLine":
        return cls(LineKind.CONTEXT, text)

    @classmethod
    def addition(cls, text: str) -> "PatchLine":
        return cls(LineKind.ADDITION, text)

    @classmethod
    def deletion(cls, text: str) -> "PatchLine":
        return cls(LineKind.DELETION, text)

    @classmethod
    def no_newline(cls) -> "PatchLine":
        return cls(LineKind.NO_NEWLINE)

    @property
    def in_old(self) -> bool:
        return self.kind in (LineKind.CONTEXT, LineKind.DELETION)

    @property
    def in_new(self) -> bool:
        return self.kind in (LineKind.CONTEXT, LineKind.ADDITION)

    def render(self) -> str:
        if self.kind is LineKind.NO_NEWLINE:
            return NO_NEWLINE_MARKER
        return self.kind.value + self.text


@dataclass(frozen=True)
class Hunk:
    """A contiguous block of changes with its declared line ranges.

    ``old_start`` is the 1-based line in the pre-image; ``0`` together with
    ``old_count == 0`` denotes an insertion at the top of the file (or a
    brand-new file).
    """
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: tuple[PatchLine, ...] = ()
    section: str = ""

    @property
    def header(self) -> str:
        text = (
            f"@@ -{self.old_start},{self.old_count} "
            f"+{self.new_start},{self.new_count} @@"
        )
        if self.section:
            text += " " + self.section
        return text

    @property
    def old_lines(self) -> list[str]:
        return [l.text for l in self.lines if l.in_old]

    @property
    def new_lines(self) -> list[str]:
        return [l.text for l in self.lines if l.in_new]

    @property
    def old_index(self) -> int:
        """0-based index in the pre-image where the old range begins.

        A hunk with ``old_count == 0`` names the line *after which* its
        lines are inserted, so its range begins one line further down.
        """
        if self.old_count == 0:
            return self.old_start
        return self.old_start - 1

    @property
    def old_end(self) -> int:
        """0-based index in the pre-image just past the old range."""
        return self.old_index + self.old_count

    @property
    def delta(self) -> int:
        return self.new_count - self.old_count

    def eof_newline(self) -> Optional[bool]:
        """How this hunk wants the file to end.

        Returns ``False`` when a no-newline marker follows a line present in
        the new image, ``True`` when markers only follow deleted lines (the
        old image lacked the newline but the new one has it), and ``None``
        when the hunk carries no marker at all.
        """
        seen_marker = False
        new_side = False
        prev: PatchLine | None = None
        for line in self.lines:
            if line.kind is LineKind.NO_NEWLINE:
                seen_marker = True
                if prev is not None and prev.in_new:
                    new_side = True
            prev = line
        if not seen_marker:
            return None
        return not new_side


@dataclass(frozen=True)
class Patch:
    """All hunks targeting one file section of a diff."""
    file_path: str
    hunks: tuple[Hunk, ...] = ()
    is_new_file: bool = False
    is_deleted_file: bool = False

    @property
    def is_noop(self) -> bool:
        return not self.hunks

    @property
    def added(self) -> int:
        return sum(
            1 for h in self.hunks for l in h.lines if l.kind is LineKind.ADDITION
        )

    @property
    def removed(self) -> int:
        return sum(
            1 for h in self.hunks for l in h.lines if l.kind is LineKind.DELETION
        )


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

class ApplyStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class BatchOutcome(str, Enum):
    ALL_APPLIED = "all_applied"
    PARTIALLY_APPLIED = "partially_applied"
    NONE_APPLIED = "none_applied"


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of applying one ``Patch``."""
    file_path: str
    status: ApplyStatus
    reason: Optional[ErrorKind] = None
    hunks_applied: int = 0
    message: str = ""

    @property
    def succeeded(self) -> bool:
        """Applied, or skipped because there was nothing to do."""
        if self.status is ApplyStatus.APPLIED:
            return True
        return self.status is ApplyStatus.SKIPPED and self.reason is None

    def to_dict(self) -> dict:
        return {
            "file": self.file_path,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "hunks_applied": self.hunks_applied,
            "message": self.message,
        }


@dataclass(frozen=True)
class BatchReport:
    """Per-file results of a batch plus the overall verdict."""
    results: tuple[ApplyResult, ...] = ()
    overall: BatchOutcome = BatchOutcome.ALL_APPLIED
    dry_run: bool = False
    changes: dict[str, Optional[str]] = field(
        default_factory=dict, compare=False, repr=False,
    )

    @classmethod
    def from_results(cls, results, *, dry_run: bool = False,
                     changes: dict[str, Optional[str]] | None = None,
                     ) -> "BatchReport":
        results = tuple(results)
        ok = sum(1 for r in results if r.succeeded)
        if ok == len(results):
            overall = BatchOutcome.ALL_APPLIED
        elif ok == 0:
            overall = BatchOutcome.NONE_APPLIED
        else:
            overall = BatchOutcome.PARTIALLY_APPLIED
        return cls(results=results, overall=overall, dry_run=dry_run,
                   changes=dict(changes or {}))

    @property
    def applied(self) -> list[ApplyResult]:
        return [r for r in self.results if r.status is ApplyStatus.APPLIED]

    @property
    def failed(self) -> list[ApplyResult]:
        return [r for r in self.results if r.status is ApplyStatus.FAILED]

    @property
    def skipped(self) -> list[ApplyResult]:
        return [r for r in self.results if r.status is ApplyStatus.SKIPPED]

    def summary(self) -> str:
        """Human-readable one-liner, e.g. ``2 of 3 files patched``."""
        text = f"{len(self.applied)} of {len(self.results)} files patched"
        if self.failed:
            text += f", {len(self.failed)} failed"
        if self.skipped:
            text += f", {len(self.skipped)} skipped"
        if self.dry_run:
            text += " (dry run)"
        return text

    def to_dict(self) -> dict:
        return {
            "overall": self.overall.value,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
        }
