"""
inventory/store/locks.py - Keyed mutex

One lock per key, created on demand. Holders of different keys never
contend; the registry lock is only held while looking a key's lock up.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """Per-key mutual exclusion

    Example:
        locks = KeyedLock()
        with locks.hold(("111111111111", "compute")):
            ...
    """

    def __init__(self):
        self._locks: dict[Hashable, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _get(self, key: Hashable) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._get(key)
        with lock:
            yield

    @contextmanager
    def hold_many(self, keys: list[Hashable]) -> Iterator[None]:
        """Hold several keys at once, acquired in sorted order to avoid deadlock"""
        ordered = sorted(set(keys), key=repr)
        locks = [self._get(key) for key in ordered]
        acquired: list[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
