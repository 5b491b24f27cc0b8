"""Tests for the file stores."""

import os
import stat

import pytest

from patch_engine.editing.batch import apply_all
from patch_engine.editing.diff_parser import parse
from patch_engine.editing.errors import ErrorKind, FileStoreError
from patch_engine.editing.file_store import (
    DryRunFileStore, LocalFileStore, MemoryFileStore,
)
from patch_engine.editing.models import BatchOutcome


@pytest.fixture
def local(tmp_path):
    return LocalFileStore(str(tmp_path))


class TestLocalFileStore:
    def test_read_missing_returns_none(self, local):
        assert local.read("nope.txt") is None

    def test_write_creates_parent_dirs(self, local, tmp_path):
        local.write("pkg/sub/mod.py", "x = 1\n")

        assert (tmp_path / "pkg" / "sub" / "mod.py").read_text() == "x = 1\n"

    def test_crlf_round_trips_byte_exact(self, local, tmp_path):
        (tmp_path / "win.txt").write_bytes(b"a\r\nb\r\n")

        assert local.read("win.txt") == "a\r\nb\r\n"
        local.write("win.txt", "A\r\nb\r\n")
        assert (tmp_path / "win.txt").read_bytes() == b"A\r\nb\r\n"

    def test_no_temp_files_left_behind(self, local, tmp_path):
        local.write("a.txt", "one\n")
        local.write("a.txt", "two\n")

        assert os.listdir(tmp_path) == ["a.txt"]

    def test_path_outside_root_rejected(self, local):
        with pytest.raises(FileStoreError) as info:
            local.read("../escape.txt")
        assert info.value.kind is ErrorKind.IO_ERROR

        with pytest.raises(FileStoreError):
            local.write("/etc/passwd", "")

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_file_mode_preserved(self, local, tmp_path):
        script = tmp_path / "run.sh"
        script.write_text("echo hi\n")
        script.chmod(0o755)

        local.write("run.sh", "echo bye\n")

        assert stat.S_IMODE(script.stat().st_mode) == 0o755

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_new_file_follows_umask(self, tmp_path):
        previous = os.umask(0o022)
        try:
            store = LocalFileStore(str(tmp_path))
            store.write("pkg/new.txt", "hello\n")
        finally:
            os.umask(previous)

        mode = stat.S_IMODE((tmp_path / "pkg" / "new.txt").stat().st_mode)
        assert mode == 0o644

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_new_file_from_dev_null_diff(self, tmp_path):
        previous = os.umask(0o027)
        try:
            report = apply_all(
                parse("--- /dev/null\n+++ b/new.txt\n@@ -0,0 +1 @@\n+hi\n"),
                LocalFileStore(str(tmp_path)),
            )
        finally:
            os.umask(previous)

        assert report.overall is BatchOutcome.ALL_APPLIED
        assert stat.S_IMODE((tmp_path / "new.txt").stat().st_mode) == 0o640

    def test_failed_replace_keeps_original(self, local, tmp_path, monkeypatch):
        (tmp_path / "f.txt").write_text("original\n")

        def _boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", _boom)
        with pytest.raises(FileStoreError):
            local.write("f.txt", "new\n")

        assert (tmp_path / "f.txt").read_text() == "original\n"
        assert os.listdir(tmp_path) == ["f.txt"]

    def test_delete(self, local, tmp_path):
        (tmp_path / "f.txt").write_text("x\n")

        local.delete("f.txt")
        local.delete("f.txt")

        assert not (tmp_path / "f.txt").exists()

    def test_undecodable_file(self, local, tmp_path):
        (tmp_path / "bin.dat").write_bytes(b"\xff\xfe\x00\x81")

        with pytest.raises(FileStoreError):
            local.read("bin.dat")


class TestDryRunFileStore:
    def test_writes_stay_in_memory(self):
        base = MemoryFileStore({"a.txt": "a\n"})
        dry = DryRunFileStore(base)

        dry.write("a.txt", "b\n")
        dry.delete("gone.txt")

        assert dry.read("a.txt") == "b\n"
        assert dry.read("gone.txt") is None
        assert base.files == {"a.txt": "a\n"}
        assert dry.pending == {"a.txt": "b\n", "gone.txt": None}

    def test_reads_fall_through_to_base(self):
        dry = DryRunFileStore(MemoryFileStore({"a.txt": "a\n"}))

        assert dry.read("a.txt") == "a\n"
        assert dry.read("b.txt") is None

    def test_deleted_then_read_is_absent(self):
        dry = DryRunFileStore(MemoryFileStore({"a.txt": "a\n"}))

        dry.delete("a.txt")

        assert dry.read("a.txt") is None
