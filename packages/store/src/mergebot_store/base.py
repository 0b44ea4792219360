"""Abstract lock store interface.

Any backing store for integration locks (SQLite, in-process memory, a shared
database) implements this interface. The workflow engine depends on
BaseLockStore, not on a concrete backend, so backends are swappable without
touching the engine.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from mergebot_store.models import LockRecord


class LockStoreError(Exception):
    """The backing store could not be read or written."""


class BaseLockStore(ABC):
    """Time-boxed mutual exclusion keyed by review request.

    acquire() is a single test-and-set, never a wait: it either takes the
    lock right away or returns None. There is no re-entrancy, so a second
    acquire() for a held key fails even when the holder string is the same.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    @abstractmethod
    def acquire(self, key: str, holder: str, ttl: timedelta) -> LockRecord | None:
        """Take the lock for ``key`` if no unexpired lock exists.

        Returns the new record, or None when the key is held by anyone.
        Raises LockStoreError when the store itself fails.
        """

    @abstractmethod
    def release(self, record: LockRecord) -> None:
        """Drop ``record`` if it is still the current lock for its key.

        A lock that expired and was re-acquired by someone else is left alone.
        """

    @abstractmethod
    def list_locks(self) -> list[LockRecord]:
        """Return every stored lock, expired ones included."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """

    def _now(self) -> float:
        return self._clock()
