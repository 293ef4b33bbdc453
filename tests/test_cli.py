"""Tests for CLI commands."""

import json
from unittest.mock import patch

import pytest

from pronounguard.cli import create_parser, run_cli
from pronounguard.config import EngineConfig
from pronounguard.main import main


@pytest.fixture
def offline_config():
    config = EngineConfig(sources=["static"], static_labels={"42": "she/her"})
    with patch("pronounguard.cli.load_config", return_value=config):
        yield config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SOURCES", "CUSTOM_ENDPOINT", "TIMEOUT", "CONFIDENCE_FLOOR", "MODE", "WINDOW"):
        monkeypatch.delenv(f"PRONOUNGUARD_{name}", raising=False)


class TestCheckCommand:
    def test_mismatch_with_label(self, offline_config, capsys):
        result = run_cli([
            "check",
            "He is really good at coding @Alice",
            "--person", "Alice",
            "--label", "she/her",
        ])

        assert result == 0
        out = capsys.readouterr().out
        assert "Pronouns for Alice: she/her" in out
        assert "Found pronouns: He (80%)" in out
        assert "Correction needed: Yes" in out
        assert "He -> She (at 0)" in out
        assert "Corrected: She is really good at coding @Alice" in out

    def test_label_from_directory(self, offline_config, capsys):
        result = run_cli(["check", "He is great", "--person", "42"])

        assert result == 0
        out = capsys.readouterr().out
        assert "Message: He is great @42" in out
        assert "Pronouns for 42: she/her" in out
        assert "Corrected: She is great @42" in out

    def test_no_pronouns(self, offline_config, capsys):
        result = run_cli(["check", "hello there @42", "--person", "42"])

        assert result == 0
        out = capsys.readouterr().out
        assert "Found pronouns: None" in out
        assert "Correction needed: No" in out
        assert "Reasoning: no pronouns found" in out

    def test_floor_override(self, offline_config, capsys):
        result = run_cli(["check", "He is great @42", "--person", "42", "--floor", "90"])

        assert result == 0
        out = capsys.readouterr().out
        assert "Correction needed: No" in out
        assert "below confidence floor 90" in out

    def test_mode_run(self, offline_config, capsys):
        result = run_cli(["check", "He is great @42", "--person", "42", "--mode", "block_and_warn"])

        assert result == 0
        out = capsys.readouterr().out
        assert "Mode: block_and_warn" in out
        assert "Proceed: no" in out
        assert "Output: He is great @42" in out
        assert "Reminder: Hey! Just a gentle reminder that <@42> uses **she/her** pronouns." in out

    def test_invalid_floor(self, offline_config, capsys):
        result = run_cli(["check", "He is great @42", "--person", "42", "--floor", "150"])

        assert result == 1
        assert "Error:" in capsys.readouterr().out

    def test_person_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["check", "He is great"])


class TestLookupCommand:
    def test_found(self, offline_config, capsys):
        assert run_cli(["lookup", "42"]) == 0
        assert "42: she/her" in capsys.readouterr().out

    def test_not_found(self, offline_config, capsys):
        assert run_cli(["lookup", "7"]) == 2
        assert "7: unspecified" in capsys.readouterr().out

    def test_no_sources(self, capsys):
        with patch("pronounguard.cli.load_config", return_value=EngineConfig(sources=[])):
            assert run_cli(["lookup", "42"]) == 1
        assert "No usable pronoun sources" in capsys.readouterr().out


def test_config_command(offline_config, capsys):
    assert run_cli(["config"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["sources"] == ["static"]
    assert data["labels"] == {"42": "she/her"}
    assert data["duplicates"]["max_per_window"] == 2


def test_config_path_passed(tmp_path, capsys):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"sources": ["static"], "confidence_floor": 50}))

    assert run_cli(["--config", str(path), "config"]) == 0
    assert json.loads(capsys.readouterr().out)["confidence_floor"] == 50


def test_no_command(capsys):
    assert run_cli([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_main_exits_with_cli_code(offline_config, monkeypatch):
    monkeypatch.setattr("sys.argv", ["pronounguard", "lookup", "42"])

    with patch("pronounguard.main.load_dotenv"):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 0


def test_log_dir_writes_events(offline_config, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("pronounguard.logging._logger", None)
    log_dir = tmp_path / "logs"

    assert run_cli(["--log-dir", str(log_dir), "lookup", "42"]) == 0

    entries = [json.loads(line) for line in (log_dir / "events.jsonl").read_text().splitlines()]
    assert entries[0]["event"] == "label_resolved"
    assert entries[0]["person_id"] == "42"
    assert entries[0]["source"] == "static"


def test_log_dir_records_corrections(offline_config, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("pronounguard.logging._logger", None)
    log_dir = tmp_path / "logs"

    result = run_cli([
        "--log-dir", str(log_dir),
        "check", "He is great @42", "--person", "42", "--mode", "auto_correct",
    ])

    assert result == 0
    events = [json.loads(line)["event"] for line in (log_dir / "events.jsonl").read_text().splitlines()]
    assert "correction" in events
    assert "He is great" not in (log_dir / "events.jsonl").read_text()
