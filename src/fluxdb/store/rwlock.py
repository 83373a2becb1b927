"""
=============================================================================
READER/WRITER LOCK
=============================================================================

Python's threading module ships Lock, RLock, Condition and Semaphore, but no
shared/exclusive lock. This module builds one on top of a Condition.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHO MAY HOLD THE LOCK?                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   readers   writer   waiting writers   new reader may enter?        │
    │   ───────   ──────   ───────────────   ─────────────────────        │
    │     0         no           0            yes                         │
    │     3         no           0            yes (shared)                │
    │     3         no           1            NO  (writer goes next)      │
    │     0         yes          any          NO                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Waiting writers block newly arriving readers. Without that rule a steady
stream of GETs would keep a SET waiting forever (writer starvation).

The lock is NOT reentrant: a thread holding the read side must not try to
take the write side (it would wait for itself).

=============================================================================
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """
    Shared/exclusive lock with writer preference.

    Usage:
        lock = ReadWriteLock()

        with lock.read_locked():
            value = data.get(key)

        with lock.write_locked():
            data[key] = value
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        """Block until no writer holds or waits for the lock, then share it."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a reader")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Block until there are no readers and no writer, then take the lock."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a writer")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Number of threads currently holding the read side."""
        return self._readers

    @property
    def write_held(self) -> bool:
        return self._writer
