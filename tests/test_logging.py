"""Tests for JSONL event logging."""

import json
from pathlib import Path

import pytest

from statebot import logging as statebot_logging
from statebot.logging import JSONLLogger, LogEntry


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path, encoding="utf-8") as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """LogEntry excludes None values and empty extras."""
    entry = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test")
    data = entry.to_dict()

    assert data == {"timestamp": "2024-01-01T00:00:00Z", "event": "test"}


def test_log_writes_jsonl(logger: JSONLLogger):
    logger.log("event1", bot_id="b1", facts_count=2)
    logger.log("event2", bot_id="b2", custom="value")

    first, second = read_entries(logger)

    assert first["event"] == "event1"
    assert first["bot_id"] == "b1"
    assert first["facts_count"] == 2
    assert "extra" not in first
    assert second["extra"] == {"custom": "value"}


def test_log_llm_call_success(logger: JSONLLogger):
    logger.log_llm_call(
        "claude", True, bot_id="b", attempts=2, state="A", confidence=0.9, error="ignored"
    )

    (entry,) = read_entries(logger)

    assert entry["event"] == "llm_call"
    assert entry["provider"] == "claude"
    assert entry["attempts"] == 2
    assert entry["extra"] == {"success": True}
    assert "error" not in entry


def test_log_llm_call_failure(logger: JSONLLogger):
    logger.log_llm_call("gemini", False, attempts=3, error="timeout")

    (entry,) = read_entries(logger)

    assert entry["error"] == "timeout"
    assert entry["extra"] == {"success": False}


def test_log_transition(logger: JSONLLogger):
    logger.log_transition(None, "A", bot_id="b", confidence=0.8, facts_count=1)

    (entry,) = read_entries(logger)

    assert entry["event"] == "transition"
    assert entry["state"] == "A"
    assert entry["extra"] == {"from_state": None}


def test_rotation(tmp_path: Path):
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001)  # ~100 bytes

    for i in range(5):
        logger.log("event", note="x" * 50, index=i)

    rotated = list(tmp_path.glob("events_*.jsonl"))
    assert rotated
    assert logger.log_path.exists()


def test_configure_logger_replaces_global(tmp_path: Path):
    configured = statebot_logging.configure_logger(log_dir=tmp_path / "custom")

    assert statebot_logging.get_logger() is configured
    assert configured.log_dir == tmp_path / "custom"
