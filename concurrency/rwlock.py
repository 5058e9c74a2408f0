"""
SubSearch Read/Write Lock
=========================
Single coarse-grained reader/writer lock guarding the whole index.

Design rules:
  - SHARED holders run concurrently; EXCLUSIVE excludes everyone
  - Writer preference: once a writer is waiting, new readers queue
    behind it (no writer starvation under a steady read load)
  - Not reentrant: a thread that already holds the lock must not
    acquire it again (use SubstringIndex.snapshot_locked instead)
  - Timeouts are optional; None blocks until granted

Thread safety: all state guarded by one threading.Condition.
"""

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional


class ReadWriteLock:
    """
    Reader/writer lock with writer preference.

    acquire_* return True when granted, False on timeout.
    release_* raise RuntimeError if the lock is not held in that mode.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0              # active SHARED holders
        self._writer = False           # EXCLUSIVE held
        self._writers_waiting = 0

    # ─── Public API ──────────────────────────────────────────────────────

    def acquire_read(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            ok = self._wait_for(
                lambda: not self._writer and self._writers_waiting == 0,
                timeout,
            )
            if ok:
                self._readers += 1
            return ok

    def release_read(self) -> None:
        with self._cond:
            if self._readers == 0:
                raise RuntimeError("release_read() without a SHARED hold")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            self._writers_waiting += 1
            try:
                ok = self._wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout,
                )
            finally:
                self._writers_waiting -= 1
            if ok:
                self._writer = True
            else:
                # Readers parked behind this writer may proceed now
                self._cond.notify_all()
            return ok

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() without an EXCLUSIVE hold")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        """Hold the lock SHARED for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Hold the lock EXCLUSIVE for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    # ─── Introspection API ───────────────────────────────────────────────

    @property
    def readers(self) -> int:
        """Number of threads currently holding the lock SHARED."""
        with self._cond:
            return self._readers

    @property
    def write_held(self) -> bool:
        with self._cond:
            return self._writer

    @property
    def writers_waiting(self) -> int:
        with self._cond:
            return self._writers_waiting

    # ─── Internal ────────────────────────────────────────────────────────

    def _wait_for(self, predicate, timeout: Optional[float]) -> bool:
        """Wait on the condition until predicate holds. Must hold _cond."""
        if timeout is None:
            while not predicate():
                self._cond.wait()
            return True

        deadline = time.monotonic() + timeout
        while not predicate():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._cond.wait(remaining)
        return True

    def __repr__(self) -> str:
        return (f"ReadWriteLock(readers={self._readers}, "
                f"writer={self._writer}, waiting={self._writers_waiting})")
