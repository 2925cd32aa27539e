#!/usr/bin/env python3
"""Structured logging for FilterTree.

Messages carry key=value context after a ``|`` separator:

    Scan finished | root=/data dirs=120 files=4031 cancelled=False

Context can be attached per call or pushed for a block with
:meth:`Logger.add_context`. Pushed context is thread-local, so a scanner
worker only sees what it pushed itself.

Example:
    >>> logger = Logger(level=LogLevel.INFO)
    >>> with logger.add_context(root="/data"):
    ...     logger.info("Scan started", checkers=4)
"""

import logging
import logging.handlers
import sys
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


def parse_level(level: Union[LogLevel, int, str]) -> LogLevel:
    """Turn a level name ("debug", "WARNING") or number into a LogLevel.

    Raises:
        ValueError: If the name or number is not a known level
    """
    if isinstance(level, str):
        try:
            return LogLevel[level.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {level}") from None
    return LogLevel(level)


def format_context(msg: str, context: Dict[str, Any]) -> str:
    if not context:
        return msg
    return msg + " | " + " ".join(f"{key}={value}" for key, value in context.items())


class Logger:
    """Wrapper around a named stdlib logger that appends context."""

    def __init__(
        self,
        name: str = "filtertree",
        level: Union[LogLevel, str] = LogLevel.WARNING,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        The named stdlib logger is taken over: its handlers are replaced and
        propagation to the root logger is turned off.

        Args:
            name: stdlib logger name
            level: Minimum level to output
            handlers: Output handlers (default: one stderr handler)

        Raises:
            ValueError: If level is not a known level
        """
        self.name = name
        self._local = threading.local()
        self.logger = logging.getLogger(name)
        self.set_level(level)

        self.logger.handlers.clear()
        for handler in handlers if handlers is not None else [self._console_handler()]:
            self.logger.addHandler(handler)
        self.logger.propagate = False

    @staticmethod
    def _console_handler() -> logging.StreamHandler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ) -> logging.handlers.RotatingFileHandler:
        """Rotating file handler that also records the thread name."""
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count
        )
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)

    @property
    def level(self) -> LogLevel:
        return LogLevel(self.logger.level)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        self.logger.setLevel(parse_level(level))

    # Context

    def _frames(self) -> List[Dict[str, Any]]:
        frames = getattr(self._local, "frames", None)
        if frames is None:
            frames = self._local.frames = []
        return frames

    def _merged_context(self, extra: Dict[str, Any]) -> Dict[str, Any]:
        context: Dict[str, Any] = {}
        for frame in self._frames():
            context.update(frame)
        context.update(extra)
        return context

    @contextmanager
    def add_context(self, **kwargs):
        """Attach key=value pairs to every message logged in the block.

        Example:
            >>> with logger.add_context(root="/data"):
            ...     logger.info("Scanning")
        """
        frames = self._frames()
        frames.append(kwargs)
        try:
            yield
        finally:
            frames.pop()

    # Output

    def _log(self, level: int, msg: str, context: Dict[str, Any], exc: Optional[BaseException] = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        merged = self._merged_context(context)
        self.logger.log(level, format_context(msg, merged), exc_info=exc, extra={"context": merged})

    def debug(self, msg: str, **context) -> None:
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._log(logging.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        self._log(logging.ERROR, msg, context)

    def exception(self, msg: str, exc: Exception, **context) -> None:
        """Log at ERROR with the exception's type, message and traceback."""
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self._log(logging.ERROR, msg, context, exc=exc)


_global_logger: Optional[Logger] = None


def get_logger(name: str = "filtertree") -> Logger:
    """Return the shared logger, creating it on first use (or for a new name)."""
    global _global_logger
    if _global_logger is None or _global_logger.name != name:
        _global_logger = Logger(name=name)
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    global _global_logger
    _global_logger = logger
