"""Structured JSON logging system.

Every execution emits key-value records (command, pid, exit code, timings)
so that the configuration engine driving us can correlate child processes.
"""

import json
import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DEFAULT_LOG_DIR = "~/.execrunner/logs"
LOG_FILE_NAME = "execrunner.log"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


class ExecRunnerLogger:
    """Structured JSON logger with rotation and operation timing.

    Writes JSON lines to stderr and, unless disabled, to a rotating
    execrunner.log. The log directory comes from the ``log_dir`` argument,
    then EXECRUNNER_LOG_DIR, then ~/.execrunner/logs.
    EXECRUNNER_DISABLE_FILE_LOGGING turns the file off unless ``log_dir``
    is passed explicitly.
    """

    log_dir: Path | None
    log_file: Path | None

    def __init__(
        self,
        log_dir: str | None = None,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        level: str | None = None,
    ) -> None:
        """Initialize logger with rotation.

        Args:
            log_dir: Directory for log files
            max_bytes: Maximum size before rotation (default 10MB)
            backup_count: Number of backup files to keep (default 5)
            level: Log level (DEBUG/INFO/WARN/ERROR), reads from EXECRUNNER_LOG_LEVEL env if not provided
        """
        self._logger = logging.getLogger("execrunner")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False

        for handler in self._logger.handlers[:]:
            handler.close()
            self._logger.removeHandler(handler)

        self.log_dir = None
        self.log_file = None
        if log_dir is not None or not _env_flag("EXECRUNNER_DISABLE_FILE_LOGGING"):
            self.log_dir = Path(
                log_dir or os.environ.get("EXECRUNNER_LOG_DIR") or DEFAULT_LOG_DIR
            ).expanduser()
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / LOG_FILE_NAME

            file_handler = RotatingFileHandler(
                self.log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setFormatter(JSONFormatter())
            self._logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(JSONFormatter())
        self._logger.addHandler(console_handler)

        # Default to WARNING so routine executions stay quiet
        self.set_level(level or os.environ.get("EXECRUNNER_LOG_LEVEL", "WARNING"))

    def set_level(self, level: str) -> None:
        """Set logging level.

        Args:
            level: One of DEBUG, INFO, WARN/WARNING, ERROR
        """
        level_upper = level.upper()
        if level_upper == "WARN":
            level_upper = "WARNING"

        numeric_level = getattr(logging, level_upper, logging.INFO)
        self._logger.setLevel(numeric_level)

    def debug(self, msg: str, **kv: Any) -> None:
        """Log debug message with optional key-value pairs."""
        self._logger.debug(msg, extra={"kv": kv})

    def info(self, msg: str, **kv: Any) -> None:
        """Log info message with optional key-value pairs."""
        self._logger.info(msg, extra={"kv": kv})

    def warn(self, msg: str, **kv: Any) -> None:
        """Log warning message with optional key-value pairs."""
        self._logger.warning(msg, extra={"kv": kv})

    def error(self, msg: str, **kv: Any) -> None:
        """Log error message with optional key-value pairs."""
        self._logger.error(msg, extra={"kv": kv})

    @contextmanager
    def operation(self, operation_name: str, **kv: Any) -> Iterator[dict[str, Any]]:
        """Time an operation and log its start and end records.

        Yields a dict that the caller can fill with results (pid, exit code);
        its entries are added to the end record. An exception escaping the
        block is recorded under ``error``.

        Example:
            with logger.operation("execute", command="rpm -qa") as record:
                record["pid"] = spawner.spawn(...)
        """
        start = time.monotonic()
        record: dict[str, Any] = {}
        self.debug(f"{operation_name}_start", **kv)

        try:
            yield record
        except BaseException as e:
            record["error"] = type(e).__name__
            raise
        finally:
            duration_ms = round((time.monotonic() - start) * 1000, 3)
            self.debug(f"{operation_name}_end", **{**kv, **record, "duration_ms": duration_ms})


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string
        """
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        timestamp = dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

        log_data = {
            "timestamp": timestamp,
            "level": record.levelname,
            "message": record.getMessage(),
            "process": record.process,
        }

        if hasattr(record, "kv") and record.kv:
            log_data.update(record.kv)

        return json.dumps(log_data, default=str)


_default_logger: ExecRunnerLogger | None = None


def get_logger() -> ExecRunnerLogger:
    """Return the shared logger, creating it on first use."""
    global _default_logger
    if _default_logger is None:
        _default_logger = ExecRunnerLogger()
    return _default_logger
