"""SQLiteLockStore: file-based lock store shared between bot processes.

Why SQLite for locks:
- Batteries included: ships with Python, no extra dependencies.
- BEGIN IMMEDIATE takes the database write lock up front, so the
  read-expired-then-insert sequence below is an atomic test-and-set even
  when several processes open the same file.
- Good for a bot running as several workers on one host.

Schema:
  locks: one row per key; a row whose expires_at has passed is treated as
           free and overwritten by the next acquire().
"""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import timedelta
from typing import Callable

from mergebot_store.base import BaseLockStore, LockStoreError
from mergebot_store.models import LockRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS locks (
    key          TEXT PRIMARY KEY,
    holder       TEXT NOT NULL,
    acquired_at  REAL NOT NULL,
    expires_at   REAL NOT NULL
);
"""

# Seconds to wait for another process's write transaction to finish.
_BUSY_TIMEOUT = 30.0


class SQLiteLockStore(BaseLockStore):
    """Stores integration locks in a local SQLite database file.

    The database file path defaults to `.mergebot.db` in the current working
    directory. Configure via .mergebot.yml: `store_path: /path/to/locks.db`.
    """

    def __init__(self, db_path: str = ".mergebot.db", clock: Callable[[], float] = time.time):
        super().__init__(clock)
        # isolation_level=None: transactions are opened explicitly below.
        self._conn = sqlite3.connect(db_path, timeout=_BUSY_TIMEOUT, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    def acquire(self, key: str, holder: str, ttl: timedelta) -> LockRecord | None:
        try:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                return self._test_and_set(key, holder, ttl)
            except sqlite3.Error:
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            raise LockStoreError(f"Could not acquire lock {key}: {e}") from e

    def _test_and_set(self, key: str, holder: str, ttl: timedelta) -> LockRecord | None:
        now = self._now()
        row = self._conn.execute("SELECT * FROM locks WHERE key=?", (key,)).fetchone()
        if row is not None and not self._row_to_record(row).is_expired(now):
            self._conn.execute("ROLLBACK")
            logger.debug("Lock %s is held by %s", key, row["holder"])
            return None
        record = LockRecord(key=key, holder=holder, acquired_at=now, expires_at=now + ttl.total_seconds())
        self._conn.execute(
            "INSERT OR REPLACE INTO locks (key, holder, acquired_at, expires_at) VALUES (?, ?, ?, ?)",
            (record.key, record.holder, record.acquired_at, record.expires_at),
        )
        self._conn.execute("COMMIT")
        return record

    def release(self, record: LockRecord) -> None:
        try:
            self._conn.execute(
                "DELETE FROM locks WHERE key=? AND holder=? AND acquired_at=?",
                (record.key, record.holder, record.acquired_at),
            )
        except sqlite3.Error as e:
            raise LockStoreError(f"Could not release lock {record.key}: {e}") from e

    def list_locks(self) -> list[LockRecord]:
        rows = self._conn.execute("SELECT * FROM locks ORDER BY acquired_at").fetchall()
        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> LockRecord:
        return LockRecord(
            key=row["key"],
            holder=row["holder"],
            acquired_at=row["acquired_at"],
            expires_at=row["expires_at"],
        )
