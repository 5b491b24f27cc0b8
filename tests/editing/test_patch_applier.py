"""Tests for the PatchApplier."""

import difflib

import pytest

from patch_engine.editing.diff_parser import parse
from patch_engine.editing.errors import (
    ContextMismatch, ErrorKind, FileNotFound, SyntaxCheckFailed,
    UnexpectedExistingFile,
)
from patch_engine.editing.models import Hunk, Patch, PatchLine
from patch_engine.editing.patch_applier import PatchApplier, apply


ctx, add, rm = PatchLine.context, PatchLine.addition, PatchLine.deletion

FIVE_LINES = "a\nb\nc\nd\ne\n"


def _udiff(old: str, new: str, n: int = 3) -> str:
    return "".join(difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile="a/f.txt", tofile="b/f.txt", n=n,
    ))


class TestMultiHunkOffsets:
    def test_insertions_shift_later_hunks(self):
        patch = Patch("f.txt", hunks=(
            Hunk(1, 1, 1, 2, (ctx("a"), add("x"))),
            Hunk(3, 1, 4, 2, (ctx("c"), add("y"))),
        ))

        assert apply(patch, FIVE_LINES) == "a\nx\nb\nc\ny\nd\ne\n"

    def test_deletions_shift_later_hunks(self):
        original = "l1\nl2\nl3\nl4\nl5\nl6\n"
        patch = Patch("f.txt", hunks=(
            Hunk(1, 2, 0, 0, (rm("l1"), rm("l2"))),
            Hunk(5, 1, 3, 1, (rm("l5"), add("L5"))),
        ))

        assert apply(patch, original) == "l3\nl4\nL5\nl6\n"

    def test_pure_insertion_goes_after_named_line(self):
        patch = Patch("f.txt", hunks=(Hunk(2, 0, 3, 1, (add("X"),)),))

        assert apply(patch, "a\nb\nc\n") == "a\nb\nX\nc\n"

    def test_insertion_at_top(self):
        patch = Patch("f.txt", hunks=(Hunk(0, 0, 1, 1, (add("first"),)),))

        assert apply(patch, "a\n") == "first\na\n"

    def test_insertion_then_adjacent_replacement(self):
        text = (
            "--- a/f.txt\n+++ b/f.txt\n"
            "@@ -1,0 +2,1 @@\n+x\n"
            "@@ -2,1 +3,1 @@\n-b\n+B\n"
        )

        assert apply(parse(text)[0], "a\nb\nc\n") == "a\nx\nB\nc\n"

    def test_append_at_end(self):
        patch = Patch("f.txt", hunks=(Hunk(2, 1, 2, 2, (ctx("b"), add("c"))),))

        assert apply(patch, "a\nb\n") == "a\nb\nc\n"


class TestContextVerification:
    def test_mismatch_in_later_hunk_reports_original_numbering(self):
        patch = Patch("f.txt", hunks=(
            Hunk(1, 1, 1, 2, (ctx("a"), add("x"))),
            Hunk(4, 1, 5, 1, (rm("D"), add("Z"))),
        ))

        with pytest.raises(ContextMismatch) as info:
            apply(patch, FIVE_LINES)

        err = info.value
        assert err.kind is ErrorKind.CONTEXT_MISMATCH
        assert err.file_path == "f.txt"
        assert err.hunk_index == 2
        assert err.line_number == 4
        assert err.expected_line == "D"
        assert err.actual_line == "d"

    def test_context_past_end_of_file(self):
        patch = Patch("f.txt", hunks=(Hunk(2, 2, 2, 2, (ctx("b"), ctx("c"))),))

        with pytest.raises(ContextMismatch) as info:
            apply(patch, "a\nb\n")
        assert info.value.actual_line is None
        assert info.value.line_number == 3

    def test_hunk_starting_past_end_of_file(self):
        patch = Patch("f.txt", hunks=(Hunk(10, 0, 11, 1, (add("z"),)),))

        with pytest.raises(ContextMismatch):
            apply(patch, "a\nb\n")

    def test_double_apply_is_rejected_by_context(self):
        text = "--- a/f.txt\n+++ b/f.txt\n@@ -1,2 +1,2 @@\n-a\n+A\n b\n"
        patch = parse(text)[0]
        once = apply(patch, "a\nb\n")

        assert once == "A\nb\n"
        with pytest.raises(ContextMismatch):
            apply(patch, once)

    def test_whitespace_differences_are_mismatches(self):
        patch = Patch("f.txt", hunks=(Hunk(1, 1, 1, 1, (rm("x = 1"), add("x = 2"))),))

        with pytest.raises(ContextMismatch):
            apply(patch, "x = 1  \n")


class TestFileLifecycle:
    def test_new_file_from_absent(self):
        patch = Patch("hello.txt", is_new_file=True, hunks=(
            Hunk(0, 0, 1, 2, (add("hello"), add("world"))),
        ))

        assert apply(patch, None) == "hello\nworld\n"
        assert apply(patch, "") == "hello\nworld\n"

    def test_new_file_over_existing_content(self):
        patch = Patch("hello.txt", is_new_file=True, hunks=(
            Hunk(0, 0, 1, 2, (add("hello"), add("world"))),
        ))

        with pytest.raises(UnexpectedExistingFile):
            apply(patch, "already here\n")

    def test_missing_file(self):
        patch = Patch("gone.txt", hunks=(Hunk(1, 1, 1, 1, (rm("a"), add("b"))),))

        with pytest.raises(FileNotFound) as info:
            apply(patch, None)
        assert info.value.kind is ErrorKind.FILE_NOT_FOUND

    def test_deleted_file(self):
        patch = Patch("old.txt", is_deleted_file=True, hunks=(
            Hunk(1, 2, 0, 0, (rm("a"), rm("b"))),
        ))

        assert apply(patch, "a\nb\n") == ""

    def test_deleted_file_with_leftover_content(self):
        patch = Patch("old.txt", is_deleted_file=True, hunks=(
            Hunk(1, 1, 0, 0, (rm("a"),)),
        ))

        with pytest.raises(ContextMismatch) as info:
            apply(patch, "a\nb\n")
        assert info.value.actual_line == "b"

    def test_noop_returns_content_unchanged(self):
        patch = Patch("f.txt")

        for content in ("", "a", "a\r\nb\r\n", "x\n\n\n"):
            assert apply(patch, content) == content


class TestLineEndings:
    def test_crlf_preserved(self):
        patch = Patch("f.txt", hunks=(Hunk(1, 1, 1, 1, (rm("a"), add("A"))),))

        assert apply(patch, "a\r\nb\r\n") == "A\r\nb\r\n"

    def test_mixed_line_endings_keep_their_own_terminators(self):
        patch = parse("--- a/f\n+++ b/f\n@@ -3,1 +3,1 @@\n-c\n+C\n")[0]

        assert apply(patch, "a\nb\r\nc\n") == "a\nb\r\nC\n"

    def test_mixed_line_endings_additions_use_dominant_terminator(self):
        patch = Patch("f.txt", hunks=(
            Hunk(1, 1, 1, 2, (ctx("a"), add("x"))),
        ))

        assert apply(patch, "a\r\nb\nc\r\n") == "a\r\nx\r\nb\nc\r\n"

    def test_mixed_line_endings_context_verified_without_terminator(self):
        patch = Patch("f.txt", hunks=(
            Hunk(1, 3, 1, 2, (ctx("a"), rm("b"), ctx("c"))),
        ))

        assert apply(patch, "a\r\nb\nc\r\nd\n") == "a\r\nc\r\nd\n"

    def test_append_after_unterminated_last_line(self):
        patch = Patch("f.txt", hunks=(Hunk(2, 1, 2, 2, (ctx("b"), add("c"))),))

        assert apply(patch, "a\nb") == "a\nb\nc"

    def test_missing_trailing_newline_preserved(self):
        patch = Patch("f.txt", hunks=(Hunk(1, 1, 1, 1, (rm("a"), add("A"))),))

        assert apply(patch, "a\nb\nc") == "A\nb\nc"

    def test_marker_on_old_side_adds_newline(self):
        text = (
            "--- a/f.txt\n+++ b/f.txt\n@@ -1,2 +1,2 @@\n"
            " a\n-b\n\\ No newline at end of file\n+b\n"
        )

        assert apply(parse(text)[0], "a\nb") == "a\nb\n"

    def test_marker_on_new_side_drops_newline(self):
        text = (
            "--- a/f.txt\n+++ b/f.txt\n@@ -1,2 +1,2 @@\n"
            " a\n-b\n+b\n\\ No newline at end of file\n"
        )

        assert apply(parse(text)[0], "a\nb\n") == "a\nb"


class TestRoundTrip:
    @pytest.mark.parametrize("old,new", [
        ("a\nb\nc\n", "a\nB\nc\n"),
        ("a\nb\nc\n", "start\na\nb\nc\nend\n"),
        ("a\nb\nc\n", ""),
        ("", "fresh\ncontent\n"),
        (
            "".join(f"line {i}\n" for i in range(1, 41)),
            "".join(
                f"line {i}\n" if i % 10 else f"changed {i}\nextra {i}\n"
                for i in range(1, 41) if i != 25
            ),
        ),
    ])
    def test_difflib_diff_reproduces_target(self, old, new):
        for n in (0, 1, 3):
            patches = parse(_udiff(old, new, n=n))
            result = old
            for patch in patches:
                result = apply(patch, result)
            assert result == new


class TestSyntaxValidation:
    def test_broken_python_rejected(self):
        patch = Patch("mod.py", hunks=(
            Hunk(1, 1, 1, 1, (rm("def f():"), add("def f(:"))),
        ))

        with pytest.raises(SyntaxCheckFailed) as info:
            PatchApplier(validate_syntax=True).apply(patch, "def f():\n    return 1\n")
        assert info.value.kind is ErrorKind.SYNTAX_ERROR

    def test_valid_python_accepted(self):
        patch = Patch("mod.py", hunks=(
            Hunk(2, 1, 2, 1, (rm("    return 1"), add("    return 2"))),
        ))

        result = PatchApplier(validate_syntax=True).apply(
            patch, "def f():\n    return 1\n",
        )
        assert result == "def f():\n    return 2\n"

    def test_disabled_by_default(self):
        patch = Patch("mod.py", hunks=(
            Hunk(1, 1, 1, 1, (rm("def f():"), add("def f(:"))),
        ))

        assert apply(patch, "def f():\n") == "def f(:\n"
