"""
Diff display: render parsed patches back to unified-diff text and show
them with ANSI colours before they are applied.
"""

from __future__ import annotations

import logging

from .editing.diff_parser import DEV_NULL, HUNK_HEADER
from .editing.models import Patch

logger = logging.getLogger(__name__)


def format_patch(patch: Patch) -> str:
    """Serialise *patch* back to unified-diff text.

    This re-emits what was parsed; it never computes a diff.
    """
    old_name = DEV_NULL if patch.is_new_file else f"a/{patch.file_path}"
    new_name = DEV_NULL if patch.is_deleted_file else f"b/{patch.file_path}"
    lines = [f"--- {old_name}", f"+++ {new_name}"]
    for hunk in patch.hunks:
        lines.append(hunk.header)
        lines.extend(line.render() for line in hunk.lines)
    return "\n".join(lines)


def classify_diff_lines(diff_text: str) -> list[tuple[str, str]]:
    """Tag each line of *diff_text* as meta, hunk, add, del or context.

    Hunk bodies are tracked by their declared counts, so a deleted ``-- x``
    or an added ``++ y`` inside a hunk is never mistaken for a file header.
    """
    tagged: list[tuple[str, str]] = []
    old_left = new_left = 0
    for line in diff_text.splitlines():
        if old_left > 0 or new_left > 0:
            if line.startswith("+"):
                new_left -= 1
                tagged.append(("add", line))
                continue
            if line.startswith("-"):
                old_left -= 1
                tagged.append(("del", line))
                continue
            if line.startswith(" ") or line == "":
                old_left -= 1
                new_left -= 1
                tagged.append(("context", line))
                continue
            if line.startswith("\\"):
                tagged.append(("context", line))
                continue
            old_left = new_left = 0

        match = HUNK_HEADER.match(line)
        if match:
            old_left = int(match.group(2)) if match.group(2) is not None else 1
            new_left = int(match.group(4)) if match.group(4) is not None else 1
            tagged.append(("hunk", line))
        elif line.startswith("+++") or line.startswith("---"):
            tagged.append(("meta", line))
        elif line.startswith("+"):
            tagged.append(("add", line))
        elif line.startswith("-"):
            tagged.append(("del", line))
        else:
            tagged.append(("context", line))
    return tagged


_ANSI = {
    "meta": "\033[1m",   # bold
    "hunk": "\033[36m",  # cyan
    "add": "\033[32m",   # green
    "del": "\033[31m",   # red
}


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks,
    bold for file headers.
    """
    colored: list[str] = []
    for kind, line in classify_diff_lines(diff_text):
        if kind in _ANSI:
            colored.append(f"{_ANSI[kind]}{line}\033[0m")
        else:
            colored.append(line)
    return "\n".join(colored)


def show_patches(patches: list[Patch], log_only: bool = False) -> list[str]:
    """Display every patch as a coloured diff.

    When *log_only* is True, diffs are logged but not printed.
    Returns the plain diff strings.
    """
    diff_strings: list[str] = []

    for patch in patches:
        diff_text = format_patch(patch)
        diff_strings.append(diff_text)

        if log_only:
            logger.info("Diff for %s:\n%s", patch.file_path, diff_text)
        else:
            print(f"\n{'─' * 60}")
            print(format_colored_diff(diff_text))

    new_files = [p.file_path for p in patches if p.is_new_file]
    deleted = [p.file_path for p in patches if p.is_deleted_file]
    if not log_only:
        if new_files:
            print(f"\n  New files: {', '.join(new_files)}")
        if deleted:
            print(f"  Deleted files: {', '.join(deleted)}")

    return diff_strings
