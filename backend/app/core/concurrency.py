import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class ReaderLockRegistry:
    """Hands out one lock per reader so profile updates are serialized.

    Feedback application is read-modify-write on XP, streak and averages;
    two completions for the same reader must never interleave. A reader's
    lock lives only while some thread holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _lock_for(self, reader_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(reader_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[reader_id] = lock
            return lock

    @contextmanager
    def hold(self, reader_id: str) -> Iterator[None]:
        """Holds the reader's lock for the duration of the block."""
        lock = self._lock_for(reader_id)
        with lock:
            yield


reader_locks = ReaderLockRegistry()
