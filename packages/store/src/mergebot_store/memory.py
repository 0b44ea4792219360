"""In-process lock store.

Suitable when a single bot process handles every command, and in tests.
Nothing survives a restart, which is acceptable because locks are
time-boxed anyway.
"""

from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Callable

from mergebot_store.base import BaseLockStore
from mergebot_store.models import LockRecord


class MemoryLockStore(BaseLockStore):
    """Keeps locks in a dict guarded by a threading.Lock."""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._mutex = threading.Lock()
        self._locks: dict[str, LockRecord] = {}

    def acquire(self, key: str, holder: str, ttl: timedelta) -> LockRecord | None:
        with self._mutex:
            now = self._now()
            current = self._locks.get(key)
            if current is not None and not current.is_expired(now):
                return None
            record = LockRecord(key=key, holder=holder, acquired_at=now, expires_at=now + ttl.total_seconds())
            self._locks[key] = record
            return record

    def release(self, record: LockRecord) -> None:
        with self._mutex:
            if self._locks.get(record.key) == record:
                del self._locks[record.key]

    def list_locks(self) -> list[LockRecord]:
        with self._mutex:
            return sorted(self._locks.values(), key=lambda r: r.acquired_at)
