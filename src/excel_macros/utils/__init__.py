"""Utilities package for excel-macros.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
- Session observers (observer.py)
"""

from excel_macros.utils.exceptions import (
    DocumentError,
    ErrorCode,
    ExcelMacrosError,
    InvalidCellReferenceError,
    ManifestParseError,
    PackageError,
    PackageOpenError,
    PartNotFoundError,
    SheetDataMissingError,
    SheetNotFoundError,
    WorkbookError,
)
from excel_macros.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_session_id,
    set_session_id,
)
from excel_macros.utils.observer import LoggingObserver, WorkbookObserver

__all__ = [
    # Exceptions
    "DocumentError",
    "ErrorCode",
    "ExcelMacrosError",
    "InvalidCellReferenceError",
    "ManifestParseError",
    "PackageError",
    "PackageOpenError",
    "PartNotFoundError",
    "SheetDataMissingError",
    "SheetNotFoundError",
    "WorkbookError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_session_id",
    "set_session_id",
    # Observers
    "LoggingObserver",
    "WorkbookObserver",
]
