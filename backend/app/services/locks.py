"""Process-local locks keyed by auction id.

Row locks (``SELECT ... FOR UPDATE``) serialise writers across processes on
PostgreSQL, but SQLite ignores ``FOR UPDATE``. These locks give the same
per-auction serialisation to every worker thread of one process regardless
of the database backend.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager

from app.domain.errors import InternalError


class LockTimeout(InternalError):
    """Raised when a keyed lock could not be acquired in time."""


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLockRegistry:
    """Hand out one mutex per key; entries vanish once nobody holds or waits."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, key: Hashable, *, timeout: float | None = None) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1

        acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
        try:
            if not acquired:
                raise LockTimeout(f"timed out waiting for lock {key!r}")
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


auction_locks = KeyedLockRegistry()
