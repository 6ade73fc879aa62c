# app/core/locks.py
import threading
from contextlib import contextmanager


class KeyedLock:
    """
    One exclusive lock per key (booking id, provider id, ...).
    An entry lives only while someone holds or waits for it, so the table
    stays as small as the number of keys in use right now.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders + waiters]
        self._locks: dict = {}

    def _acquire_entry(self, key) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key):
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key):
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    def __len__(self):
        with self._guard:
            return len(self._locks)


_booking_locks = KeyedLock()
_provider_locks = KeyedLock()


def booking_lock(booking_id: int):
    return _booking_locks.hold(booking_id)


def provider_lock(provider_id: int):
    return _provider_locks.hold(provider_id)
