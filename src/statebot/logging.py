"""JSONL event logging for determination observability."""

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
    bot_id: str | None = None
    provider: str | None = None
    state: str | None = None
    confidence: float | None = None
    facts_count: int | None = None
    duration_ms: float | None = None
    attempts: int | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".statebot" / "logs"
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
        bot_id: str | None = None,
        provider: str | None = None,
        state: str | None = None,
        confidence: float | None = None,
        facts_count: int | None = None,
        duration_ms: float | None = None,
        attempts: int | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            bot_id=bot_id,
            provider=provider,
            state=state,
            confidence=confidence,
            facts_count=facts_count,
            duration_ms=duration_ms,
            attempts=attempts,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_llm_call(
        self,
        provider: str,
        success: bool,
        *,
        bot_id: str | None = None,
        duration_ms: float | None = None,
        attempts: int | None = None,
        state: str | None = None,
        confidence: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log a completed backend call, including its retries."""
        self.log(
            "llm_call",
            bot_id=bot_id,
            provider=provider,
            duration_ms=duration_ms,
            attempts=attempts,
            state=state,
            confidence=confidence,
            error=error if not success else None,
            success=success,
        )

    def log_transition(
        self,
        from_state: str | None,
        to_state: str,
        *,
        bot_id: str | None = None,
        confidence: float | None = None,
        facts_count: int | None = None,
    ) -> None:
        """Log a change of current state."""
        self.log(
            "transition",
            bot_id=bot_id,
            state=to_state,
            confidence=confidence,
            facts_count=facts_count,
            from_state=from_state,
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
