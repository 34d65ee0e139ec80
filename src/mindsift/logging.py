"""JSONL logging for pipeline observability."""

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
    dump_id: str | None = None
    user_id: str | None = None
    stage: str | None = None
    outcome: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured pipeline events in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "pipeline.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".mindsift" / "logs"
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
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def log(
        self,
        event: str,
        *,
        dump_id: str | None = None,
        user_id: str | None = None,
        stage: str | None = None,
        outcome: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            dump_id=dump_id,
            user_id=user_id,
            stage=stage,
            outcome=outcome,
            duration_ms=duration_ms,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_pipeline_start(self, dump_id: str, user_id: str, source: str) -> None:
        """Log the start of a pipeline run."""
        self.log("pipeline_start", dump_id=dump_id, user_id=user_id, source=source)

    def log_stage(
        self,
        dump_id: str,
        stage: str,
        *,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log the completion (or failure) of one pipeline stage."""
        self.log("stage", dump_id=dump_id, stage=stage, duration_ms=duration_ms, error=error)

    def log_item_skipped(self, dump_id: str, index: int, reason: str) -> None:
        """Log an extracted item that was not persisted."""
        self.log("item_skipped", dump_id=dump_id, error=reason, index=index)

    def log_pipeline_end(
        self,
        dump_id: str,
        outcome: str,
        *,
        thoughts: int,
        skipped: int,
        duration_ms: float | None = None,
    ) -> None:
        """Log the terminal state of a pipeline run."""
        self.log(
            "pipeline_end",
            dump_id=dump_id,
            outcome=outcome,
            duration_ms=duration_ms,
            thoughts=thoughts,
            skipped=skipped,
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
