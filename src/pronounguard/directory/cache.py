"""Time-bounded cache for resolved pronoun labels."""

import time
from typing import Callable

from .models import CacheEntryStats, CacheStats, PronounRecord

DEFAULT_TTL_SECONDS = 5 * 60


class PronounCache:
    """In-memory label cache with a fixed TTL.

    A record is served only while ``now - resolved_at < ttl``. Expired
    records are treated as absent and dropped when read.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: dict[str, PronounRecord] = {}

    def now(self) -> float:
        """Current clock reading."""
        return self._clock()

    def _is_fresh(self, record: PronounRecord) -> bool:
        return self._clock() - record.resolved_at < self.ttl_seconds

    def get(self, person_id: str) -> PronounRecord | None:
        """Return the cached record if still fresh."""
        record = self._records.get(person_id)
        if record is None:
            return None
        if not self._is_fresh(record):
            del self._records[person_id]
            return None
        return record

    def put(self, person_id: str, label: str, source: str | None = None) -> PronounRecord:
        """Store a label with a fresh timestamp, overwriting any previous record."""
        record = PronounRecord(
            person_id=person_id,
            label=label,
            resolved_at=self._clock(),
            source=source,
        )
        self._records[person_id] = record
        return record

    def invalidate(self, person_id: str) -> bool:
        """Drop one person's record. Returns True if one existed."""
        return self._records.pop(person_id, None) is not None

    def clear(self) -> int:
        """Drop every record. Returns how many were dropped."""
        count = len(self._records)
        self._records.clear()
        return count

    def __len__(self) -> int:
        return sum(1 for record in self._records.values() if self._is_fresh(record))

    def stats(self) -> CacheStats:
        """Read-only view over the fresh records."""
        now = self._clock()
        entries = [
            CacheEntryStats(
                person_id=record.person_id,
                label=record.label,
                age_seconds=now - record.resolved_at,
                source=record.source,
            )
            for record in self._records.values()
            if self._is_fresh(record)
        ]
        return CacheStats(size=len(entries), entries=entries)
