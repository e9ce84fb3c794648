"""
Structured logging for fscache.

Provides:
- Context variables for cache_dir and operation (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches context to all log calls
- setup_logging() that configures both file and console handlers
- reset_logging() that restores the library default (NullHandler, propagate)
- Context manager log_context() for scoped context
- get_logger() factory
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

# Context variables for structured logging
_cache_dir_var: ContextVar[str | None] = ContextVar("cache_dir", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


def get_cache_dir() -> str | None:
    """Get the current cache directory from context."""
    return _cache_dir_var.get()


def get_operation() -> str | None:
    """Get the current cache operation from context."""
    return _operation_var.get()


@contextmanager
def log_context(
    cache_dir: str | Path | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        cache_dir: Cache directory to set in context.
        operation: Operation name to set in context.

    Yields:
        None. Context variables are set for the duration of the context.
    """
    old_cache_dir = _cache_dir_var.get()
    old_operation = _operation_var.get()

    try:
        if cache_dir is not None:
            _cache_dir_var.set(str(cache_dir))
        if operation is not None:
            _operation_var.set(operation)
        yield
    finally:
        _cache_dir_var.set(old_cache_dir)
        _operation_var.set(old_operation)


def _context_fields() -> dict[str, str]:
    fields: dict[str, str] = {}
    cache_dir = get_cache_dir()
    operation = get_operation()
    if cache_dir:
        fields["cache_dir"] = cache_dir
    if operation:
        fields["operation"] = operation
    return fields


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files.

    Produces JSON Lines format with structured context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(_context_fields())

        # Add extra fields from the record
        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that includes the current operation in console output."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)

        operation = get_operation()
        if operation:
            return Text.from_markup(f"{level_text} [cyan]{operation}[/cyan]")

        return level_text


class ContextLogger:
    """Logger wrapper that automatically attaches context to log calls.

    Keyword arguments other than exc_info/stack_info/stacklevel are
    collected into a structured ``extra`` dict.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Get the logger name."""
        return self._logger.name

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = kwargs.pop("extra", {})
        extra.update(_context_fields())

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel"):
                extra[key] = kwargs.pop(key)

        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


# Global console for rich output
_console: Console | None = None

# Library default: no output until the application configures logging
logging.getLogger("fscache").addHandler(logging.NullHandler())


def get_console() -> Console:
    """Get the global rich console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with JSON file handler and rich console handler.

    Importing fscache never calls this. Applications (and the fscache CLI)
    call it when they want fscache to own its output instead of
    propagating records to their root handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    root_logger = logging.getLogger("fscache")
    root_logger.setLevel(getattr(logging, log_level.upper()))
    _close_handlers(root_logger)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)  # Log everything to file
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False


def reset_logging() -> None:
    """Undo setup_logging and return to the library default."""
    root_logger = logging.getLogger("fscache")
    _close_handlers(root_logger)
    root_logger.addHandler(logging.NullHandler())
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Records propagate to the application's handlers unless
    setup_logging() has been called.

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not name.startswith("fscache"):
        name = f"fscache.{name}"

    return ContextLogger(logging.getLogger(name))
