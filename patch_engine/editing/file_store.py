"""
File stores: the engine's only window onto the filesystem.

``LocalFileStore`` writes atomically (temp file in the destination directory,
then ``os.replace``), so a failed or interrupted write never leaves a
half-written target behind.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from typing import Optional, Protocol

from .errors import FileStoreError

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".patch_engine_"


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class FileStore(Protocol):
    """Collaborator interface the batch orchestrator reads and writes through."""

    def read(self, path: str) -> Optional[str]:
        """Return the file's content, or None when it does not exist."""
        ...

    def write(self, path: str, content: str) -> None:
        """Replace the file's content; raises ``FileStoreError``."""
        ...

    def delete(self, path: str) -> None:
        """Remove the file; raises ``FileStoreError``."""
        ...


class LocalFileStore:
    """Read and write files under a project root directory."""

    def __init__(self, root: str = ".", encoding: str = "utf-8") -> None:
        self.root = os.path.abspath(root)
        self.encoding = encoding
        # Umask snapshot, taken before any worker thread writes.
        self._new_file_mode = 0o666 & ~_current_umask()

    def resolve(self, path: str) -> str:
        """Return the absolute path for *path*, refusing anything outside root."""
        full = os.path.abspath(os.path.join(self.root, path))
        if os.path.commonpath([self.root, full]) != self.root or full == self.root:
            raise FileStoreError(f"{path}: path escapes {self.root}", path)
        return full

    def read(self, path: str) -> Optional[str]:
        full = self.resolve(path)
        if not os.path.isfile(full):
            return None
        try:
            # newline="" keeps CRLF files byte-exact
            with open(full, "r", encoding=self.encoding, newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise FileStoreError(f"{path}: read failed: {exc}", path) from exc

    def write(self, path: str, content: str) -> None:
        full = self.resolve(path)
        directory = os.path.dirname(full)
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=_TMP_PREFIX, dir=directory)
            with os.fdopen(fd, "w", encoding=self.encoding, newline="") as f:
                f.write(content)
            if os.path.exists(full):
                shutil.copymode(full, tmp_path)
            else:
                # mkstemp creates 0600; new files follow the umask instead.
                os.chmod(tmp_path, self._new_file_mode)
            os.replace(tmp_path, full)
            tmp_path = None
        except OSError as exc:
            raise FileStoreError(f"{path}: write failed: {exc}", path) from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.debug("[Patch] Could not remove temp file %s", tmp_path)
        logger.debug("[Patch] Wrote %s (%d chars)", path, len(content))

    def delete(self, path: str) -> None:
        full = self.resolve(path)
        try:
            os.remove(full)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise FileStoreError(f"{path}: delete failed: {exc}", path) from exc
        logger.debug("[Patch] Deleted %s", path)


class MemoryFileStore:
    """Dict-backed store, for hosts that keep buffers in memory."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self._lock = threading.Lock()

    def read(self, path: str) -> Optional[str]:
        with self._lock:
            return self.files.get(path)

    def write(self, path: str, content: str) -> None:
        with self._lock:
            self.files[path] = content

    def delete(self, path: str) -> None:
        with self._lock:
            self.files.pop(path, None)


class DryRunFileStore:
    """Read through to *base*; keep every write and delete in memory.

    Later patches to the same path see earlier results, so a dry run
    reports exactly what a real run would do without touching *base*.
    ``pending`` maps each changed path to its new content (None = deleted).
    """

    def __init__(self, base: FileStore) -> None:
        self._base = base
        self._lock = threading.Lock()
        self.pending: dict[str, Optional[str]] = {}

    def read(self, path: str) -> Optional[str]:
        with self._lock:
            if path in self.pending:
                return self.pending[path]
        return self._base.read(path)

    def write(self, path: str, content: str) -> None:
        with self._lock:
            self.pending[path] = content

    def delete(self, path: str) -> None:
        with self._lock:
            self.pending[path] = None
