"""Windowed duplicate tracker for throttling repeated corrections."""

import asyncio
import hashlib
import logging
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class DuplicateSettings:
    """Settings for the duplicate tracker."""

    window_minutes: float = 60
    max_per_window: int = 2
    sweep_interval_minutes: float = 30

    def __post_init__(self) -> None:
        if self.window_minutes <= 0:
            raise ValueError("window_minutes must be positive")
        if self.max_per_window < 1:
            raise ValueError("max_per_window must be at least 1")
        if self.sweep_interval_minutes <= 0:
            raise ValueError("sweep_interval_minutes must be positive")

    @property
    def window_seconds(self) -> float:
        return self.window_minutes * 60

    @property
    def retention_seconds(self) -> float:
        """Records older than twice the window are evicted."""
        return self.window_seconds * 2

    @property
    def sweep_interval_seconds(self) -> float:
        return self.sweep_interval_minutes * 60


@dataclass(frozen=True)
class CorrectionRecord:
    """A correction that fired."""

    context_id: str
    person_id: str
    timestamp: float
    fingerprint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorrectionRecord":
        return cls(**data)


@dataclass
class PersonStats:
    """Correction statistics for one person across contexts."""

    total: int = 0
    recent: int = 0
    contexts: list[str] = field(default_factory=list)
    oldest: float | None = None
    newest: float | None = None


@dataclass
class ContextStats:
    """Correction statistics for one context across people."""

    total: int = 0
    recent: int = 0
    unique_people: int = 0
    oldest: float | None = None
    newest: float | None = None


def fingerprint(content: str) -> str:
    """Cheap content hash for spotting identical repeat corrections."""
    return hashlib.blake2b(content.encode("utf-8"), digest_size=8).hexdigest()


def context_key(context_id: str, person_id: str) -> tuple[str, str]:
    """Composite key for a (context, person) pair."""
    return (context_id, person_id)


class WindowedDuplicateTracker:
    """Tracks corrections per (context, person) inside a rolling window.

    Eviction is lazy: every read or write first sweeps stale records once
    the sweep interval has elapsed. ``start_sweeper`` adds an optional
    background task for hosts with a running event loop.
    """

    def __init__(
        self,
        settings: DuplicateSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or DuplicateSettings()
        self._clock = clock
        self._records: dict[tuple[str, str], list[CorrectionRecord]] = {}
        self._last_sweep = clock()
        self._sweep_task: asyncio.Task | None = None

    def _in_window(self, record: CorrectionRecord, now: float, window_seconds: float) -> bool:
        return now - record.timestamp < window_seconds

    def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self.settings.sweep_interval_seconds:
            self.sweep()

    def sweep(self) -> int:
        """Drop records older than twice the window. Returns how many were dropped."""
        now = self._clock()
        self._last_sweep = now
        max_age = self.settings.retention_seconds
        removed = 0

        for key in list(self._records):
            records = self._records[key]
            kept = [r for r in records if now - r.timestamp < max_age]
            removed += len(records) - len(kept)
            if kept:
                self._records[key] = kept
            else:
                del self._records[key]

        if removed:
            logger.info("Swept %d old correction records", removed)
        return removed

    def is_duplicate(
        self,
        context_id: str,
        person_id: str,
        content: str | None = None,
    ) -> bool:
        """Check whether another correction would exceed the window quota.

        Also true when ``content`` is given and an in-window record carries
        the same fingerprint.
        """
        self._maybe_sweep()
        recent = self._recent(context_key(context_id, person_id), self.settings.window_seconds)

        if len(recent) >= self.settings.max_per_window:
            return True

        if content is not None:
            digest = fingerprint(content)
            if any(record.fingerprint == digest for record in recent):
                return True

        return False

    def record(
        self,
        context_id: str,
        person_id: str,
        content: str | None = None,
    ) -> CorrectionRecord:
        """Append a correction record stamped with the current time."""
        self._maybe_sweep()
        record = CorrectionRecord(
            context_id=context_id,
            person_id=person_id,
            timestamp=self._clock(),
            fingerprint=fingerprint(content) if content is not None else None,
        )
        self._records.setdefault(context_key(context_id, person_id), []).append(record)
        return record

    def _recent(self, key: tuple[str, str], window_seconds: float) -> list[CorrectionRecord]:
        now = self._clock()
        return [
            record
            for record in self._records.get(key, [])
            if self._in_window(record, now, window_seconds)
        ]

    def recent(
        self,
        context_id: str,
        person_id: str,
        window_minutes: float | None = None,
    ) -> list[CorrectionRecord]:
        """Records for a (context, person) pair inside the window."""
        self._maybe_sweep()
        minutes = window_minutes if window_minutes is not None else self.settings.window_minutes
        return self._recent(context_key(context_id, person_id), minutes * 60)

    def person_stats(self, person_id: str) -> PersonStats:
        """Statistics for one person, computed at call time."""
        self._maybe_sweep()
        now = self._clock()
        stats = PersonStats()

        for records in self._records.values():
            for record in records:
                if record.person_id != person_id:
                    continue
                stats.total += 1
                if self._in_window(record, now, self.settings.window_seconds):
                    stats.recent += 1
                if record.context_id not in stats.contexts:
                    stats.contexts.append(record.context_id)
                stats.oldest = record.timestamp if stats.oldest is None else min(stats.oldest, record.timestamp)
                stats.newest = record.timestamp if stats.newest is None else max(stats.newest, record.timestamp)

        return stats

    def context_stats(self, context_id: str) -> ContextStats:
        """Statistics for one context, computed at call time."""
        self._maybe_sweep()
        now = self._clock()
        stats = ContextStats()
        people: set[str] = set()

        for records in self._records.values():
            for record in records:
                if record.context_id != context_id:
                    continue
                stats.total += 1
                people.add(record.person_id)
                if self._in_window(record, now, self.settings.window_seconds):
                    stats.recent += 1
                stats.oldest = record.timestamp if stats.oldest is None else min(stats.oldest, record.timestamp)
                stats.newest = record.timestamp if stats.newest is None else max(stats.newest, record.timestamp)

        stats.unique_people = len(people)
        return stats

    def size(self) -> int:
        """Total number of tracked records."""
        self._maybe_sweep()
        return sum(len(records) for records in self._records.values())

    def _remove_where(self, predicate: Callable[[CorrectionRecord], bool]) -> int:
        removed = 0
        for key in list(self._records):
            records = self._records[key]
            kept = [r for r in records if not predicate(r)]
            removed += len(records) - len(kept)
            if kept:
                self._records[key] = kept
            else:
                del self._records[key]
        return removed

    def clear_person(self, person_id: str) -> int:
        """Remove every record for a person. Returns how many were removed."""
        return self._remove_where(lambda r: r.person_id == person_id)

    def clear_context(self, context_id: str) -> int:
        """Remove every record for a context. Returns how many were removed."""
        return self._remove_where(lambda r: r.context_id == context_id)

    def clear_key(self, context_id: str, person_id: str) -> int:
        """Remove the records of one (context, person) pair."""
        return len(self._records.pop(context_key(context_id, person_id), []))

    def clear(self) -> int:
        """Remove all records. Returns how many were removed."""
        count = sum(len(records) for records in self._records.values())
        self._records.clear()
        return count

    def update_settings(self, **changes: Any) -> DuplicateSettings:
        """Replace settings fields, revalidating the result."""
        self.settings = replace(self.settings, **changes)
        if "sweep_interval_minutes" in changes and self._sweep_task is not None:
            self.stop_sweeper()
            self.start_sweeper()
        return self.settings

    def export_data(self) -> list[dict[str, Any]]:
        """Copy of all records as plain dicts, oldest key first."""
        return [r.to_dict() for records in self._records.values() for r in records]

    def import_data(self, data: list[dict[str, Any]]) -> None:
        """Replace all records with previously exported data."""
        self._records = {}
        for item in data:
            record = CorrectionRecord.from_dict(item)
            key = context_key(record.context_id, record.person_id)
            self._records.setdefault(key, []).append(record)

    async def _sweep_loop(self) -> None:
        """Background task for periodic sweeps."""
        while True:
            try:
                await asyncio.sleep(self.settings.sweep_interval_seconds)
                self.sweep()
            except asyncio.CancelledError:
                break

    def start_sweeper(self) -> None:
        """Start the background sweep task. Requires a running event loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    def stop_sweeper(self) -> None:
        """Stop the background sweep task."""
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
        self._sweep_task = None

    def destroy(self) -> None:
        """Stop the sweeper and drop all records."""
        self.stop_sweeper()
        self.clear()
