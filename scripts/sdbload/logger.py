"""
Structured logging for the loader.
Timestamped, level-filtered lines with key=value details.
"""
import sys
import threading
from datetime import datetime
from enum import Enum
from typing import Optional, TextIO


class LogLevel(Enum):
    """Log severity levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.SUCCESS: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
}


class StructuredLogger:
    """
    Writes one line per message: [timestamp] [LEVEL] message (key=value, ...).

    Warnings and errors go to the error stream, everything else to the
    output stream. Writes are serialized so lines from worker threads
    never interleave.
    """

    def __init__(
        self,
        min_level: LogLevel = LogLevel.INFO,
        show_timestamp: bool = True,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.min_level = min_level
        self.show_timestamp = show_timestamp
        self._out = out
        self._err = err
        self._lock = threading.Lock()

    def is_enabled(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.min_level]

    def format_message(self, level: LogLevel, message: str, details: Optional[dict] = None) -> str:
        parts = []
        if self.show_timestamp:
            parts.append(f"[{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}]")
        parts.append(f"[{level.value}]")
        parts.append(message)

        # None-valued details carry no information
        if details:
            shown = [f"{k}={v}" for k, v in details.items() if v is not None]
            if shown:
                parts.append(f"({', '.join(shown)})")

        return " ".join(parts)

    def log(self, level: LogLevel, message: str, **details):
        if not self.is_enabled(level):
            return

        line = self.format_message(level, message, details)
        if level in (LogLevel.WARNING, LogLevel.ERROR):
            stream = self._err or sys.stderr
        else:
            stream = self._out or sys.stdout

        with self._lock:
            stream.write(line + "\n")
            stream.flush()

    def debug(self, message: str, **details):
        self.log(LogLevel.DEBUG, message, **details)

    def info(self, message: str, **details):
        self.log(LogLevel.INFO, message, **details)

    def success(self, message: str, **details):
        self.log(LogLevel.SUCCESS, message, **details)

    def warning(self, message: str, **details):
        self.log(LogLevel.WARNING, message, **details)

    def error(self, message: str, **details):
        self.log(LogLevel.ERROR, message, **details)

    def section(self, title: str):
        """Log a banner separating the phases of a run."""
        separator = "=" * 60
        self.info(separator)
        self.info(title)
        self.info(separator)


# Process-wide logger instance
_default_logger: Optional[StructuredLogger] = None


def get_logger() -> StructuredLogger:
    """Get or create the process-wide logger."""
    global _default_logger
    if _default_logger is None:
        _default_logger = StructuredLogger()
    return _default_logger


def set_logger(logger: StructuredLogger):
    """Replace the process-wide logger."""
    global _default_logger
    _default_logger = logger
