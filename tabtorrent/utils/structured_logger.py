"""
Structured logging for session lifecycle events.
Provides JSON-formatted logs with context and metadata alongside the regular
console/file log.
"""

import json
import logging
import os
import sys
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("tabtorrent", log_dir=Path("~/.local/share/tabtorrent"))
        logger.info("session_started", session_id=3, uri="magnet:?xt=...")
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None

        self._logger = logging.getLogger(name)

        self._json_file = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"tabtorrent_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Added to all log entries
        self._process_context: dict[str, Any] = {
            "run_id": f"{int(time.time())}_{os.getpid()}",
        }

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._process_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            # Fallback to stderr if JSON logging fails
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._log(logging.WARNING, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SessionLogger:
    """Specialized logger for download tab events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def session_started(self, session_id: int, uri: str, output_dir: str):
        self.logger.info(
            "session_started", session_id=session_id, uri=uri, output_dir=output_dir
        )

    def name_resolved(self, session_id: int, name: str, fallback: bool):
        self.logger.debug(
            "name_resolved", session_id=session_id, name=name, fallback=fallback
        )

    def session_finished(
        self, session_id: int, state: str, duration_s: float, error: str | None = None
    ):
        self.logger.info(
            "session_finished",
            session_id=session_id,
            state=state,
            duration_s=round(duration_s, 2),
            error=error,
        )

    def snapshot_dump(self, session_id: int, tick: int, snapshot: Any):
        self.logger.debug(
            "snapshot_dump", session_id=session_id, tick=tick, snapshot=snapshot
        )


def configure_file_logging(
    log_dir: Path, max_files: int = 3, max_bytes: int = 10 * 1024 * 1024
) -> RotatingFileHandler:
    """
    Attaches a size-rotated `tabtorrent.log` in `log_dir` to the package logger.

    Keeps `max_files` rotated files of at most `max_bytes` each. Calling it
    again returns the handler that is already installed.
    """
    package_logger = logging.getLogger("tabtorrent")
    for existing in package_logger.handlers:
        if isinstance(existing, RotatingFileHandler):
            return existing

    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / "tabtorrent.log",
        maxBytes=max_bytes,
        backupCount=max_files,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logging.getLogger("tabtorrent").addHandler(handler)
    return handler


def create_session_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> SessionLogger:
    """Create the structured session logger."""
    return SessionLogger(
        StructuredLogger("tabtorrent.sessions", log_dir=log_dir, enable_json=enable_json)
    )
