"""
Structured Logging
==================

Structured logging with context propagation.

Features:
- JSON-formatted log output for log aggregation systems
- Context propagation across function calls (operation, workspace)
- Performance timing utilities
- Log correlation IDs, one per orchestrated operation
"""

import contextlib
import contextvars
import functools
import inspect
import json
import logging
import sys
import time
import traceback
import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from typing import Any, TypeVar

# Context variable for request correlation
_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)
_context_data: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "context_data", default=None
)

T = TypeVar("T")

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


EXTRA_FIELDS = ("duration_ms", "status", "error_code", "stage")


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log collectors and ``--json-logs``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = _correlation_id.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        context = _context_data.get()
        if context:
            entry["context"] = context

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )
        entry["location"] = f"{record.filename}:{record.lineno}"
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line stderr format: level, short correlation id, operation.

    Example:
        INFO     [3f2a9c1d] [commit_and_push] agent_workbench.service: commit_and_push succeeded (412.0ms)
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        tags = []
        correlation_id = _correlation_id.get()
        if correlation_id:
            tags.append(f"[{correlation_id[:8]}]")
        operation = (_context_data.get() or {}).get("operation")
        if operation:
            tags.append(f"[{operation}]")
        prefix = "".join(f" {tag}" for tag in tags)

        message = record.getMessage()
        if hasattr(record, "duration_ms"):
            message = f"{message} ({record.duration_ms:.1f}ms)"
        return f"{level}{prefix} {record.name}: {message}"


def parse_level(level: int | str) -> int:
    """Accept a logging level as int or name ("debug", "WARNING", ...)."""
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name == "WARN":
        name = "WARNING"
    if name not in LEVEL_NAMES:
        raise ValueError(f"Unknown log level: {level!r}")
    return getattr(logging, name)


def configure_logging(
    level: int | str = logging.WARNING,
    structured: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Configure the root logger for the application.

    Logs go to stderr so stdout stays free for command payloads.

    Args:
        level: Minimum log level
        structured: Use JSON format
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(parse_level(level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = ConsoleFormatter(use_color=sys.stderr.isatty())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())  # Always structured in files
        root_logger.addHandler(file_handler)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set the correlation ID for the current context.

    Args:
        correlation_id: ID to use, or None to generate a new one

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def get_log_context() -> dict[str, Any]:
    return dict(_context_data.get() or {})


def clear_log_context() -> None:
    """Clear all context data."""
    _context_data.set(None)
    _correlation_id.set(None)


@contextlib.contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """
    Layer fields onto the log context for the duration of a block.

    Usage:
        with log_context(operation="create_pr", workspace=str(path)):
            logger.info("Pushing branch")
    """
    merged = {**(_context_data.get() or {}), **fields}
    token = _context_data.set(merged)
    try:
        yield merged
    finally:
        _context_data.reset(token)


class Timer:
    """
    Measure wall-clock time of a block in milliseconds.

    Usage:
        with Timer("probe") as timer:
            outcome = runner.run(...)
        logger.info("Probe completed", extra={"duration_ms": timer.duration_ms})
    """

    def __init__(self, name: str = "operation"):
        self.name = name
        self.duration_ms: float = 0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        return False


def timed(logger: logging.Logger | None = None, level: int = logging.DEBUG):
    """
    Log how long each call of the decorated function takes.

    Works for plain and ``async def`` functions. Defaults to the logger
    of the function's module.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        log = logger or logging.getLogger(func.__module__)
        label = f"{func.__name__} completed"

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                with Timer(func.__name__) as timer:
                    result = await func(*args, **kwargs)
                log.log(level, label, extra={"duration_ms": timer.duration_ms})
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with Timer(func.__name__) as timer:
                result = func(*args, **kwargs)
            log.log(level, label, extra={"duration_ms": timer.duration_ms})
            return result

        return wrapper

    return decorator


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    level: int = logging.ERROR,
    **extra: Any,
) -> None:
    """
    Log an exception with full context.

    Args:
        logger: Logger instance
        message: Error message
        exc: Exception to log
        level: Log level
        **extra: Additional context
    """
    logger.log(
        level,
        message,
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={
            "error_code": getattr(exc, "error_code", type(exc).__name__),
            **extra,
        },
    )
