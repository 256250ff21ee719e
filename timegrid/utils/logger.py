"""Centralized logging setup for the timetable extraction service.

Provides the root logging configuration, named module loggers and a
capture helper that collects pipeline log lines for API responses.
"""

import logging
import sys
import threading
from types import TracebackType

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


class _ListHandler(logging.Handler):
    """Handler that appends formatted records to a list."""

    def __init__(self, sink: list[str]) -> None:
        super().__init__(level=logging.DEBUG)
        self.sink = sink
        self.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s: %(message)s", datefmt=_DATE_FORMAT
            )
        )

    def emit(self, record: logging.LogRecord) -> None:
        self.sink.append(self.format(record))


class _ThreadFilter(logging.Filter):
    """Pass only records emitted by one thread."""

    def __init__(self, thread_id: int) -> None:
        super().__init__()
        self.thread_id = thread_id

    def filter(self, record: logging.LogRecord) -> bool:
        return record.thread == self.thread_id


# Active captures per logger name, and the level each logger had before the
# first of them lowered it.
_capture_lock = threading.Lock()
_active_captures: dict[str, int] = {}
_saved_levels: dict[str, int] = {}


class LogCapture:
    """Collect log lines emitted under a logger namespace by the current thread.

    Used as a context manager around a processing run so the lines can be
    returned to the caller alongside the result. Records from other threads,
    such as concurrent API requests, are not collected.

    Args:
        name: Logger namespace to capture (``"timegrid"`` by default).
        level: Minimum level to capture.
    """

    def __init__(self, name: str = "timegrid", level: int = logging.INFO) -> None:
        self.logger = logging.getLogger(name)
        self.level = level
        self.lines: list[str] = []
        self._handler = _ListHandler(self.lines)

    def __enter__(self) -> "LogCapture":
        self._handler.setLevel(self.level)
        self._handler.addFilter(_ThreadFilter(threading.get_ident()))
        name = self.logger.name
        with _capture_lock:
            if _active_captures.get(name, 0) == 0:
                _saved_levels[name] = self.logger.level
            _active_captures[name] = _active_captures.get(name, 0) + 1
            if self.logger.getEffectiveLevel() > self.level:
                self.logger.setLevel(self.level)
            self.logger.addHandler(self._handler)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        name = self.logger.name
        with _capture_lock:
            self.logger.removeHandler(self._handler)
            _active_captures[name] -= 1
            if _active_captures[name] == 0:
                del _active_captures[name]
                self.logger.setLevel(_saved_levels.pop(name))
