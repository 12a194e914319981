"""Per-owner locks for serialized recalculation within one process."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import threading


class OwnerLocks:
    """Hand out one lock per owner id.

    Entries are reference counted and dropped once no caller holds or waits
    on them, so the table stays as small as the number of busy carts.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, owner_id: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(owner_id, (threading.Lock(), 0))
            self._locks[owner_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[owner_id]
                if users == 1:
                    del self._locks[owner_id]
                else:
                    self._locks[owner_id] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
