"""Integration lock context manager around a BaseLockStore."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from mergebot_store.base import LockStoreError

if TYPE_CHECKING:
    from mergebot_store.base import BaseLockStore
    from mergebot_store.models import LockRecord

logger = logging.getLogger(__name__)


def lock_key(repo_full_name: str, number: int) -> str:
    return f"{repo_full_name}#{number}"


class IntegrationLock:
    """Scoped lock: acquired on enter, released on every exit path.

    Entering never raises because the key is taken or the store is
    broken; check ``locked`` instead. Each instance uses a unique holder
    id, so two invocations by the same user still exclude each other.
    """

    def __init__(self, store: BaseLockStore, key: str, ttl: timedelta, requester: str = "mergebot"):
        self._store = store
        self.key = key
        self.ttl = ttl
        self.holder = f"{requester}:{uuid.uuid4().hex}"
        self.record: LockRecord | None = None

    @property
    def locked(self) -> bool:
        return self.record is not None

    def __enter__(self) -> IntegrationLock:
        try:
            self.record = self._store.acquire(self.key, self.holder, self.ttl)
        except LockStoreError:
            logger.exception("Lock store failed while acquiring %s", self.key)
            self.record = None
        if self.record is not None:
            logger.debug("Acquired integration lock %s as %s", self.key, self.holder)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.record is None:
            return
        try:
            self._store.release(self.record)
            logger.debug("Released integration lock %s", self.key)
        except LockStoreError:
            # The record stays behind until its ttl runs out.
            logger.exception("Lock store failed while releasing %s", self.key)
        self.record = None
