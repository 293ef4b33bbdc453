"""Data models for the pronoun directory."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PronounRecord:
    """A resolved pronoun label for one person.

    Attributes:
        person_id: Opaque identifier, stable across a session.
        label: Normalized label (e.g. 'she/her', 'they/them').
        resolved_at: Clock reading when the label was resolved.
        source: Name of the source that supplied the label.
    """

    person_id: str
    label: str
    resolved_at: float
    source: str | None = None


@dataclass(frozen=True)
class CacheEntryStats:
    """Read-only view of a cached record."""

    person_id: str
    label: str
    age_seconds: float
    source: str | None = None


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the label cache."""

    size: int
    entries: list[CacheEntryStats]
