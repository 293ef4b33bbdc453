"""Tests for JSONL event logging."""

import json
import tempfile
from pathlib import Path

import pytest

from pronounguard import logging as event_logging
from pronounguard.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for logs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def logger(temp_log_dir: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=temp_log_dir)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test")
    data = entry.to_dict()

    assert "timestamp" in data
    assert "event" in data
    assert "person_id" not in data  # None excluded
    assert "extra" not in data  # Empty dict excluded


def test_log_creates_file(logger: JSONLLogger):
    """Test that logging creates the log file."""
    logger.log("test_event")

    assert logger.log_path.exists()
    assert logger.log_path.name == "events.jsonl"


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that logs are written in JSONL format."""
    logger.log("event1", person_id="123")
    logger.log("event2", person_id="456")

    entries = read_entries(logger)
    assert len(entries) == 2
    assert entries[0]["event"] == "event1"
    assert entries[0]["person_id"] == "123"
    assert entries[1]["event"] == "event2"


def test_log_resolution(logger: JSONLLogger):
    """Test logging a directory resolution."""
    logger.log_resolution("42", "she/her", source="pronoundb", duration_ms=12.5)

    entry = read_entries(logger)[0]
    assert entry["event"] == "label_resolved"
    assert entry["person_id"] == "42"
    assert entry["label"] == "she/her"
    assert entry["source"] == "pronoundb"
    assert entry["duration_ms"] == 12.5
    assert entry["extra"]["cached"] is False


def test_log_source_failure(logger: JSONLLogger):
    """Test logging a failed source."""
    logger.log_source_failure("42", "custom", "HTTP 503")

    entry = read_entries(logger)[0]
    assert entry["event"] == "source_failed"
    assert entry["source"] == "custom"
    assert entry["error"] == "HTTP 503"


def test_log_correction(logger: JSONLLogger):
    """Test logging a correction carries ids but no message text."""
    logger.log_correction(
        "42",
        "general",
        label="they/them",
        confidence=80,
        edits=2,
        mode="auto_correct",
    )

    entry = read_entries(logger)[0]
    assert entry["event"] == "correction"
    assert entry["person_id"] == "42"
    assert entry["context_id"] == "general"
    assert entry["confidence"] == 80
    assert entry["extra"] == {"edits": 2, "mode": "auto_correct"}
    assert "text" not in entry


def test_log_suppressed(logger: JSONLLogger):
    """Test logging a suppressed correction."""
    logger.log_suppressed("42", "general", reason="duplicate")

    entry = read_entries(logger)[0]
    assert entry["event"] == "suppressed"
    assert entry["extra"]["reason"] == "duplicate"


def test_rotation(temp_log_dir: Path):
    """Test log rotation when max size is exceeded."""
    logger = JSONLLogger(log_dir=temp_log_dir, max_size_mb=0.001)  # ~1KB

    # Write enough to trigger rotation
    for i in range(100):
        logger.log(f"event_{i}", data="x" * 100)

    log_files = list(temp_log_dir.glob("events*.jsonl"))
    assert len(log_files) >= 2


def test_extra_fields(logger: JSONLLogger):
    """Test that extra fields are included."""
    logger.log("custom", custom_field="value", another=123)

    entry = read_entries(logger)[0]
    assert entry["extra"]["custom_field"] == "value"
    assert entry["extra"]["another"] == 123


def test_global_logger(temp_log_dir: Path, monkeypatch):
    """Test configure_logger replaces the global instance."""
    monkeypatch.setattr(event_logging, "_logger", None)

    configured = configure_logger(log_dir=temp_log_dir)

    assert get_logger() is configured
    assert configured.log_dir == temp_log_dir
