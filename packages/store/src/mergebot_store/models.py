"""Integration lock data models.

Decoupled from mergebot_core so the store layer can be used independently
and mergebot_core has no knowledge of how locks are persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class LockRecord:
    """A held integration lock.

    Timestamps are POSIX seconds so every store compares them the same way.
    A record whose expires_at lies in the past no longer excludes anyone.
    """

    key: str  # "owner/repo#123"
    holder: str
    acquired_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    @property
    def acquired_at_iso(self) -> str:
        return datetime.fromtimestamp(self.acquired_at, tz=timezone.utc).isoformat()

    @property
    def expires_at_iso(self) -> str:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc).isoformat()
