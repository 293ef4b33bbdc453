"""JSONL event logging for correction observability.

Entries identify people, contexts and sources by id only. Message content
is never written to the log.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    person_id: str | None = None
    context_id: str | None = None
    source: str | None = None
    label: str | None = None
    confidence: int | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured events in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".pronounguard" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict()) + "\n")

    def log(
        self,
        event: str,
        *,
        person_id: str | None = None,
        context_id: str | None = None,
        source: str | None = None,
        label: str | None = None,
        confidence: int | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            person_id=person_id,
            context_id=context_id,
            source=source,
            label=label,
            confidence=confidence,
            duration_ms=duration_ms,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_resolution(
        self,
        person_id: str,
        label: str,
        *,
        source: str | None = None,
        cached: bool = False,
        duration_ms: float | None = None,
    ) -> None:
        """Log a directory resolution."""
        self.log(
            "label_resolved",
            person_id=person_id,
            source=source,
            label=label,
            duration_ms=duration_ms,
            cached=cached,
        )

    def log_source_failure(self, person_id: str, source: str, error: str) -> None:
        """Log a failed directory source attempt."""
        self.log("source_failed", person_id=person_id, source=source, error=error)

    def log_correction(
        self,
        person_id: str,
        context_id: str,
        *,
        label: str,
        confidence: int,
        edits: int,
        mode: str,
    ) -> None:
        """Log a correction that fired."""
        self.log(
            "correction",
            person_id=person_id,
            context_id=context_id,
            label=label,
            confidence=confidence,
            edits=edits,
            mode=mode,
        )

    def log_suppressed(self, person_id: str, context_id: str, *, reason: str) -> None:
        """Log a correction suppressed by the duplicate tracker."""
        self.log(
            "suppressed",
            person_id=person_id,
            context_id=context_id,
            reason=reason,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
