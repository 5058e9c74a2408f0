"""
SubSearch Snapshot Store
========================
Owns the on-disk snapshot file inside a data directory.

Save strategy:
  1. Write the full snapshot to a temp file in the same directory
  2. fsync it (done by SubstringIndex.snapshot)
  3. os.replace(tmp, snapshot), atomic on POSIX

A crash or I/O error mid-save leaves the previous snapshot intact.
"""

import logging
import os
import tempfile
from typing import Callable, BinaryIO

from indexing.substring_index import SubstringIndex

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_FILE = "search.db"


class SnapshotStore:
    """File-backed persistence for a SubstringIndex."""

    def __init__(self, data_dir: str, file_name: str = DEFAULT_SNAPSHOT_FILE):
        self._data_dir = data_dir
        self._path = os.path.join(data_dir, file_name)

    @property
    def data_dir(self) -> str:
        return self._data_dir

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    # ─── Save ────────────────────────────────────────────────────────────

    def save(self, index: SubstringIndex) -> int:
        """Atomically replace the snapshot file. Returns bytes written."""
        return self._atomic_write(index.snapshot)

    def save_locked(self, index: SubstringIndex) -> int:
        """save() for callers already holding the index lock."""
        return self._atomic_write(index.snapshot_locked)

    def _atomic_write(self, writer: Callable[[BinaryIO], int]) -> int:
        os.makedirs(self._data_dir, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=self._data_dir, prefix="snapshot_", suffix=".tmp"
        )
        try:
            try:
                f = os.fdopen(tmp_fd, "wb")
            except Exception:
                os.close(tmp_fd)  # fdopen did not take ownership
                raise
            with f:
                size = writer(f)
            os.replace(tmp_path, self._path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError as cleanup_err:
                logger.warning("Could not remove temp snapshot %s: %s",
                               tmp_path, cleanup_err)
            raise

        logger.debug("Snapshot saved to %s (%d bytes)", self._path, size)
        return size

    # ─── Load ────────────────────────────────────────────────────────────

    def load(self) -> SubstringIndex:
        """Restore the index from disk; an absent file yields an empty index."""
        if not self.exists():
            logger.info("No snapshot at %s, starting empty", self._path)
            return SubstringIndex()

        with open(self._path, "rb") as f:
            return SubstringIndex.restore(f)

    def __repr__(self) -> str:
        return f"SnapshotStore({self._path!r})"
