"""Structured logging utilities for excel-macros.

This module provides:
- Session ID tracking using contextvars for correlation across one
  open-mutate-write cycle
- Structured logging with consistent format and metadata
- Performance metrics logging helpers for package I/O

Usage:
    from excel_macros.utils.logging import (
        get_logger,
        set_session_id,
        LogContext,
    )

    logger = get_logger(__name__)

    # Correlate every record of one workbook session
    set_session_id("3f2a9c")

    # Log with context
    with LogContext(sheet="Sheet1", operation="update_cell"):
        logger.info("Updating cell", ref="A1")

    # Time an operation
    with timed_operation(logger, "write") as metrics:
        metrics.bytes_written = 2048
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from excel_macros.config import settings

# Context variables for session tracking
_session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)
_extra_context_var: ContextVar[dict[str, Any] | None] = ContextVar(
    "extra_context", default=None
)


def get_session_id() -> str | None:
    """Get the current workbook session ID from context.

    Returns:
        The current session ID or None if not set.
    """
    return _session_id_var.get()


def set_session_id(session_id: str | None) -> None:
    """Set the workbook session ID in context.

    Args:
        session_id: The session ID to set, or None to clear.
    """
    _session_id_var.set(session_id)


def get_extra_context() -> dict[str, Any]:
    """Get additional context from context vars.

    Returns:
        Dictionary of extra context values.
    """
    ctx = _extra_context_var.get()
    return ctx if ctx is not None else {}


def set_extra_context(context: dict[str, Any]) -> None:
    """Set additional context in context vars.

    Args:
        context: Dictionary of extra context values.
    """
    _extra_context_var.set(context)


def clear_context() -> None:
    """Clear all context variables."""
    _session_id_var.set(None)
    _extra_context_var.set(None)


@dataclass
class PerformanceMetrics:
    """Container for performance metrics of a package operation.

    Attributes:
        operation: Name of the operation being measured.
        start_time: When the operation started.
        end_time: When the operation ended.
        duration_seconds: Duration in seconds.
        parts_processed: Number of package parts read or written.
        sheets_parsed: Number of worksheet parts parsed.
        cells_updated: Number of cells updated.
        bytes_read: Bytes read from disk.
        bytes_written: Bytes written to disk.
        custom_metrics: Additional custom metrics.
    """

    operation: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    parts_processed: int = 0
    sheets_parsed: int = 0
    cells_updated: int = 0
    bytes_read: int = 0
    bytes_written: int = 0
    custom_metrics: dict[str, Any] = field(default_factory=dict)

    def finish(self) -> None:
        """Mark the operation as complete and calculate duration."""
        self.end_time = datetime.now(UTC)
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging.

        Returns:
            Dictionary with all non-zero metrics.
        """
        result: dict[str, Any] = {
            "operation": self.operation,
            "duration_seconds": self.duration_seconds,
        }
        if self.parts_processed > 0:
            result["parts_processed"] = self.parts_processed
        if self.sheets_parsed > 0:
            result["sheets_parsed"] = self.sheets_parsed
        if self.cells_updated > 0:
            result["cells_updated"] = self.cells_updated
        if self.bytes_read > 0:
            result["bytes_read"] = self.bytes_read
        if self.bytes_written > 0:
            result["bytes_written"] = self.bytes_written
        if self.custom_metrics:
            result["custom_metrics"] = self.custom_metrics
        return result


class StructuredLogFormatter(logging.Formatter):
    """Log formatter that prefixes records with the current context.

    Adds session_id and any LogContext values to every record, creating a
    consistent structured format for all log messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with context information.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        prefix_parts = []
        session_id = get_session_id()
        if session_id:
            prefix_parts.append(f"session_id={session_id}")

        for key, value in get_extra_context().items():
            prefix_parts.append(f"{key}={value}")

        prefix = f"[{' '.join(prefix_parts)}] " if prefix_parts else ""

        original_msg = record.msg
        record.msg = f"{prefix}{original_msg}"
        result = super().format(record)
        record.msg = original_msg

        return result


class StructuredLogger:
    """Enhanced logger with structured logging capabilities.

    Wraps a standard Python logger with additional methods for:
    - Logging with key=value details
    - Performance metrics logging
    - Cell change and part operation records
    """

    def __init__(self, name: str) -> None:
        """Initialize the structured logger.

        Args:
            name: Logger name (typically __name__ of the module).
        """
        self._logger = logging.getLogger(name)
        self._name = name

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying Python logger."""
        return self._logger

    def _build_message(
        self,
        message: str,
        **kwargs: Any,
    ) -> str:
        """Build a message with structured key-value pairs.

        Args:
            message: Base message.
            **kwargs: Additional key-value pairs to include.

        Returns:
            Formatted message string.
        """
        if not kwargs:
            return message

        parts = [f"{k}={v}" for k, v in kwargs.items()]
        return f"{message} | {', '.join(parts)}"

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(self._build_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(self._build_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(self._build_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log an error message.

        Args:
            message: Log message.
            exc_info: Whether to include exception info.
            **kwargs: Additional structured data.
        """
        self._logger.error(self._build_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        self._logger.exception(self._build_message(message, **kwargs))

    def log_performance(self, metrics: PerformanceMetrics) -> None:
        """Log performance metrics.

        Args:
            metrics: Performance metrics to log.
        """
        self.info(
            f"Performance: {metrics.operation}",
            **metrics.to_dict(),
        )

    def log_cell_change(
        self,
        sheet_name: str,
        reference: str,
        old_value: str | None,
        new_value: str,
        cell_type: str | None = None,
    ) -> None:
        """Log a single cell overwrite.

        Args:
            sheet_name: Sheet holding the cell.
            reference: Canonical cell reference.
            old_value: Previous value, or None when the cell was created.
            new_value: Value written.
            cell_type: Type attribute written to the cell.
        """
        kwargs: dict[str, Any] = {
            "sheet": sheet_name,
            "cell": reference,
            "old_value": repr(old_value),
            "new_value": repr(new_value),
        }
        if cell_type is not None:
            kwargs["type"] = cell_type
        self.info("Cell change", **kwargs)

    def log_part_operation(
        self,
        operation: str,
        part_name: str,
        **details: Any,
    ) -> None:
        """Log a read/override/copy of a single package part at debug level.

        Args:
            operation: What happened to the part (e.g., "override").
            part_name: The part name inside the archive.
            **details: Additional structured data.
        """
        self.debug(f"Part {operation}", part=part_name, **details)


class LogContext:
    """Context manager for adding temporary context to logs.

    Usage:
        with LogContext(session_id="abc", sheet="Sheet1"):
            logger.info("Updating...")  # Will include session_id and sheet
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize with context values.

        Args:
            **kwargs: Key-value pairs to add to log context.
        """
        self._new_context = kwargs
        self._old_context: dict[str, Any] = {}
        self._old_session_id: str | None = None

    def __enter__(self) -> "LogContext":
        """Enter the context, saving old values and setting new ones."""
        self._old_context = get_extra_context().copy()
        self._old_session_id = get_session_id()

        new_context = dict(self._new_context)
        session_id = new_context.pop("session_id", None)
        if session_id is not None:
            set_session_id(session_id)

        merged = self._old_context.copy()
        merged.update(new_context)
        set_extra_context(merged)

        return self

    def __exit__(self, *args: Any) -> None:
        """Exit the context, restoring old values."""
        set_extra_context(self._old_context)
        set_session_id(self._old_session_id)


@contextmanager
def timed_operation(
    logger: StructuredLogger,
    operation: str,
) -> Generator[PerformanceMetrics, None, None]:
    """Context manager for timing operations.

    Usage:
        with timed_operation(logger, "open") as metrics:
            metrics.parts_processed = 12

        # Logs: "Performance: open | operation=open, duration_seconds=..."

    Args:
        logger: Logger to use for output.
        operation: Name of the operation.

    Yields:
        PerformanceMetrics instance for tracking.
    """
    metrics = PerformanceMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.finish()
        logger.log_performance(metrics)


def configure_logging(
    level: int | str | None = None,
    format_string: str | None = None,
    use_structured_formatter: bool = True,
) -> None:
    """Configure logging for applications embedding the library.

    Args:
        level: Log level (int or string like "INFO"). Defaults to the
            EXCEL_MACROS_LOG_LEVEL setting.
        format_string: Custom format string (uses default if None).
        use_structured_formatter: Whether to use the structured formatter.
    """
    if level is None:
        level = settings.log_level_int
    elif isinstance(level, str):
        level = getattr(logging, level.upper())

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter: logging.Formatter
    if use_structured_formatter:
        formatter = StructuredLogFormatter(format_string)
    else:
        formatter = logging.Formatter(format_string)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        StructuredLogger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Package opened", parts=14, path="book.xlsm")
    """
    return StructuredLogger(name)
