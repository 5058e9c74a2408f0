"""
SubSearch Substring Index
=========================
In-memory, case-insensitive substring index over (key, id, value) triples.

Structure:
  entries: outer key -> { id -> lowercase value }

Invariants:
  - An outer key is present iff its inner mapping is non-empty
  - Every stored value is lowercase (normalized on write, never on read)
  - Inner mappings are never handed out; callers go through the API

Lowercasing maps one character at a time (see fold_case), so a value
never changes length: "İ" becomes "i", and a final "Σ" becomes "σ".

Concurrency:
  One ReadWriteLock guards both levels as a unit.
  set / delete / flush        → EXCLUSIVE
  search / snapshot / lookups → SHARED

Search is a brute-force O(n) scan over the ids of one outer key.
There is no trigram or suffix acceleration; this targets small to
medium per-key cardinalities.
"""

import logging
import time
from contextlib import contextmanager
from typing import BinaryIO, Dict, Iterator, List, Optional

from concurrency.rwlock import ReadWriteLock
from indexing.result import SearchResult, format_duration
from storage.snapshot import read_snapshot, write_snapshot

logger = logging.getLogger(__name__)


def fold_case(text: str) -> str:
    """
    Lowercase character by character using the simple (1:1) mapping.

    str.lower() applies full case mapping, which expands "İ" to "i" plus
    U+0307 and makes a word-final "Σ" context dependent. The first code
    point of each character's own lowercase form is the simple mapping.
    """
    if text.isascii():
        return text.lower()
    return "".join(ch.lower()[0] for ch in text)


def clamp_range(start: int, stop: int, total: int) -> tuple[int, int]:
    """
    Normalize caller-supplied pagination bounds against `total` matches.

    stop == 0 is the "no upper bound" sentinel, not an empty page.
    Result always satisfies 0 <= start <= stop <= total.
    """
    if start > stop:
        start = stop
    if start < 0:
        start = 0
    if stop > total or stop == 0:
        stop = total
    # Negative stop, or start past the clamped stop
    if stop < 0:
        stop = 0
    if start > stop:
        start = stop
    return start, stop


class SubstringIndex:
    """
    Two-level substring index with snapshot persistence.

    All public methods are thread-safe. None of them raise for valid
    str/int arguments; snapshot() propagates I/O errors unchanged.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._entries: Dict[str, Dict[str, str]] = {}

    # ─── Mutations ───────────────────────────────────────────────────────

    def set(self, key: str, item_id: str, value: str) -> None:
        """Insert or overwrite item_id under key with the lowercased value."""
        normalized = fold_case(value)
        with self._lock.write_locked():
            items = self._entries.get(key)
            if items is None:
                items = self._entries[key] = {}
            items[item_id] = normalized

    def delete(self, key: str, item_id: str) -> None:
        """Remove item_id from key; drops key once its last id is gone."""
        with self._lock.write_locked():
            items = self._entries.get(key)
            if items is None:
                return
            items.pop(item_id, None)
            if not items:
                del self._entries[key]

    def flush(self) -> None:
        """Discard every entry. Irreversible."""
        with self._lock.write_locked():
            dropped = len(self._entries)
            self._entries = {}
        logger.info("Search index flushed (%d keys dropped)", dropped)

    # ─── Search ──────────────────────────────────────────────────────────

    def search(self, key: str, query: str, start: int = 0, stop: int = 0) -> SearchResult:
        """
        Return ids under key whose value contains query (case-insensitive).

        Matches are sorted ascending and sliced to [start, stop) after
        clamping; count reports the total before slicing.
        """
        with self._lock.read_locked():
            items = self._entries.get(key)
            if items is None:
                return SearchResult(key=key)

            t1 = time.perf_counter()
            needle = fold_case(query)
            found = [item_id for item_id, value in items.items() if needle in value]
            elapsed = format_duration(time.perf_counter() - t1)

        start, stop = clamp_range(start, stop, len(found))
        found.sort()

        return SearchResult(
            key=key,
            found=found[start:stop],
            count=len(found),
            start=start,
            stop=stop,
            elapsed=elapsed,
        )

    # ─── Introspection ───────────────────────────────────────────────────

    def keys(self) -> List[str]:
        """Sorted outer keys currently holding at least one id."""
        with self._lock.read_locked():
            return sorted(self._entries)

    def get(self, key: str, item_id: str) -> Optional[str]:
        """Stored (normalized) value, or None."""
        with self._lock.read_locked():
            items = self._entries.get(key)
            if items is None:
                return None
            return items.get(item_id)

    def count(self, key: str) -> int:
        with self._lock.read_locked():
            return len(self._entries.get(key, ()))

    def __len__(self) -> int:
        with self._lock.read_locked():
            return sum(len(items) for items in self._entries.values())

    def __contains__(self, key: object) -> bool:
        with self._lock.read_locked():
            return key in self._entries

    def __repr__(self) -> str:
        # Unlocked: repr must stay usable inside read_locked()/write_locked()
        return f"SubstringIndex(keys={len(self._entries)})"

    # ─── Locking ─────────────────────────────────────────────────────────

    @contextmanager
    def read_locked(self) -> Iterator["SubstringIndex"]:
        """
        Hold the index SHARED across several calls.
        Only snapshot_locked() may be called on the index inside the block.
        """
        with self._lock.read_locked():
            yield self

    @contextmanager
    def write_locked(self) -> Iterator["SubstringIndex"]:
        """Hold the index EXCLUSIVE; only snapshot_locked() is safe inside."""
        with self._lock.write_locked():
            yield self

    # ─── Persistence ─────────────────────────────────────────────────────

    def snapshot(self, destination: BinaryIO) -> int:
        """
        Serialize the whole index to destination and fsync it.

        Holds the lock SHARED for the duration: readers proceed, writers
        wait, and the image is a consistent point in time.
        Returns the number of bytes written.
        """
        with self._lock.read_locked():
            return self.snapshot_locked(destination)

    def snapshot_locked(self, destination: BinaryIO) -> int:
        """
        Same as snapshot(), for callers that already hold the index lock
        (see read_locked / write_locked). Takes no lock itself.
        """
        logger.debug("Search index syncing...")
        t1 = time.perf_counter()

        size = write_snapshot(destination, self._entries)

        logger.debug("Search index written to disk: duration=%s size=%d mb",
                     format_duration(time.perf_counter() - t1),
                     size // 1024 // 1024)
        return size

    @classmethod
    def restore(cls, source: BinaryIO) -> "SubstringIndex":
        """
        Build a fresh index from a snapshot stream.
        Values are re-normalized and empty mappings dropped on the way in.
        Raises SnapshotCorruptionError for damaged input.
        """
        entries = read_snapshot(source)

        index = cls()
        for key, items in entries.items():
            if items:
                index._entries[key] = {item_id: fold_case(value)
                                       for item_id, value in items.items()}

        logger.info("Search index restored: %d keys, %d ids",
                    len(index._entries),
                    sum(len(items) for items in index._entries.values()))
        return index
