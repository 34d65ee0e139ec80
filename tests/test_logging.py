"""Tests for JSONL logging."""

import json
from pathlib import Path

import pytest

from mindsift import logging as event_logging
from mindsift.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2025-01-01T00:00:00Z", event="test")
    data = entry.to_dict()

    assert "timestamp" in data
    assert "event" in data
    assert "dump_id" not in data  # None excluded
    assert "extra" not in data  # Empty dict excluded


def test_log_creates_file(logger: JSONLLogger):
    """Test that logging creates the log file."""
    logger.log("test_event")

    assert logger.log_path.exists()
    assert logger.log_path.name == "pipeline.jsonl"


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that logs are written in JSONL format."""
    logger.log("event1", dump_id="d1")
    logger.log("event2", dump_id="d2")

    entries = read_entries(logger)

    assert len(entries) == 2
    assert entries[0]["event"] == "event1"
    assert entries[0]["dump_id"] == "d1"
    assert entries[1]["event"] == "event2"


def test_log_pipeline_start(logger: JSONLLogger):
    """Test logging the start of a run."""
    logger.log_pipeline_start("d1", "u1", "voice")

    entry = read_entries(logger)[0]
    assert entry["event"] == "pipeline_start"
    assert entry["user_id"] == "u1"
    assert entry["extra"] == {"source": "voice"}


def test_log_stage_error(logger: JSONLLogger):
    """Test logging a failed stage."""
    logger.log_stage("d1", "transcribing", duration_ms=12.5, error="No usable transcript")

    entry = read_entries(logger)[0]
    assert entry["event"] == "stage"
    assert entry["stage"] == "transcribing"
    assert entry["duration_ms"] == 12.5
    assert entry["error"] == "No usable transcript"


def test_log_item_skipped(logger: JSONLLogger):
    """Test logging a skipped item."""
    logger.log_item_skipped("d1", 2, "invalid type 'banana'")

    entry = read_entries(logger)[0]
    assert entry["event"] == "item_skipped"
    assert entry["error"] == "invalid type 'banana'"
    assert entry["extra"] == {"index": 2}


def test_log_pipeline_end(logger: JSONLLogger):
    """Test logging the end of a run."""
    logger.log_pipeline_end("d1", "complete", thoughts=5, skipped=0, duration_ms=40.0)

    entry = read_entries(logger)[0]
    assert entry["outcome"] == "complete"
    assert entry["extra"] == {"thoughts": 5, "skipped": 0}


def test_rotation(tmp_path: Path):
    """Test log rotation when max size is exceeded."""
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.001)  # ~1KB

    for i in range(100):
        logger.log(f"event_{i}", data="x" * 100)

    log_files = list(tmp_path.glob("pipeline*.jsonl"))
    assert len(log_files) >= 2


def test_configure_logger(tmp_path: Path, monkeypatch):
    """Test that configure_logger replaces the global logger."""
    monkeypatch.setattr(event_logging, "_logger", None)

    configured = configure_logger(tmp_path / "logs")

    assert get_logger() is configured
    assert configured.log_dir == tmp_path / "logs"
