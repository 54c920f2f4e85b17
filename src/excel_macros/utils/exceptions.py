"""Centralized exception classes for excel-macros.

This module provides a hierarchy of custom exceptions with error codes and
structured error details for consistent error handling across the package
store, the XML document layer and the workbook session.

Exception Hierarchy:
    ExcelMacrosError (base)
    ├── PackageError
    │   ├── PackageOpenError
    │   │   └── PackageTooLargeError
    │   ├── PartNotFoundError
    │   ├── PackageWriteError
    │   └── OutputValidationError
    ├── DocumentError
    │   ├── ManifestParseError
    │   ├── SheetDataMissingError
    │   └── MalformedPartError
    └── WorkbookError
        ├── SheetNotFoundError
        ├── InvalidCellReferenceError
        ├── InvalidCellValueError
        └── WorkbookNotLoadedError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the package.

    Error codes are grouped by category:
    - E1xxx: Package (ZIP container) errors
    - E2xxx: XML document errors
    - E3xxx: Workbook operation errors
    - E9xxx: Internal/unexpected errors
    """

    # Package errors (E1xxx)
    PACKAGE_OPEN_FAILED = "E1001"
    PACKAGE_TOO_LARGE = "E1002"
    PART_NOT_FOUND = "E1003"
    PACKAGE_WRITE_FAILED = "E1004"
    OUTPUT_VALIDATION_FAILED = "E1005"

    # Document errors (E2xxx)
    MANIFEST_PARSE_ERROR = "E2001"
    SHEET_DATA_MISSING = "E2002"
    MALFORMED_PART = "E2003"

    # Workbook errors (E3xxx)
    SHEET_NOT_FOUND = "E3001"
    INVALID_CELL_REFERENCE = "E3002"
    INVALID_CELL_VALUE = "E3003"
    WORKBOOK_NOT_LOADED = "E3004"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"


class ExcelMacrosError(Exception):
    """Base exception for all excel-macros errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for structured logging.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Package Errors (E1xxx)
# =============================================================================


class PackageError(ExcelMacrosError):
    """Base class for errors raised by the ZIP container layer."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PACKAGE_OPEN_FAILED,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            error_code: Error code.
            file_path: Path to the problematic package.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, error_code, details)
        self.file_path = file_path


class PackageOpenError(PackageError):
    """Raised when a path is missing or is not a readable ZIP archive."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        error_code: ErrorCode = ErrorCode.PACKAGE_OPEN_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            file_path=file_path,
            details=details,
        )


class PackageTooLargeError(PackageOpenError):
    """Raised when a package exceeds the configured maximum size."""

    def __init__(
        self,
        file_size: int,
        max_size: int,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual package size in bytes.
            max_size: Maximum allowed size in bytes.
            file_path: Optional package path.
            details: Additional details.
        """
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        message = (
            f"Package size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message=message,
            file_path=file_path,
            error_code=ErrorCode.PACKAGE_TOO_LARGE,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


class PartNotFoundError(PackageError):
    """Raised when a named part is absent from the package."""

    def __init__(
        self,
        part_name: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the missing part name.

        Args:
            part_name: Name of the part that was requested.
            message: Optional custom message.
            details: Additional details.
        """
        details = details or {}
        details["part_name"] = part_name
        message = message or f"Part not found in package: {part_name}"
        super().__init__(
            message=message,
            error_code=ErrorCode.PART_NOT_FOUND,
            details=details,
        )
        self.part_name = part_name


class PackageWriteError(PackageError):
    """Raised when the output archive cannot be written."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.PACKAGE_WRITE_FAILED,
            file_path=file_path,
            details=details,
        )


class OutputValidationError(PackageError):
    """Raised when a freshly written archive fails structural validation."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation errors.

        Args:
            message: Main error message.
            errors: List of specific validation failures.
            file_path: Destination that was not written.
            details: Additional details.
        """
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=ErrorCode.OUTPUT_VALIDATION_FAILED,
            file_path=file_path,
            details=details,
        )
        self.errors = errors or []


# =============================================================================
# Document Errors (E2xxx)
# =============================================================================


class DocumentError(ExcelMacrosError):
    """Base class for errors in the XML parts of a package."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.MALFORMED_PART,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending part name.

        Args:
            message: Error message.
            error_code: Error code.
            part_name: Name of the part being parsed.
            details: Additional details.
        """
        details = details or {}
        if part_name:
            details["part_name"] = part_name
        super().__init__(message, error_code, details)
        self.part_name = part_name


class ManifestParseError(DocumentError):
    """Raised when the workbook manifest has no resolvable sheet entries."""

    def __init__(
        self,
        message: str,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.MANIFEST_PARSE_ERROR,
            part_name=part_name,
            details=details,
        )


class SheetDataMissingError(DocumentError):
    """Raised when a worksheet part has no sheetData section."""

    def __init__(
        self,
        sheet_name: str,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the sheet name.

        Args:
            sheet_name: Name of the sheet whose data section is missing.
            part_name: Worksheet part name, when known.
            details: Additional details.
        """
        details = details or {}
        details["sheet_name"] = sheet_name
        super().__init__(
            message=f"No sheetData found in worksheet '{sheet_name}'",
            error_code=ErrorCode.SHEET_DATA_MISSING,
            part_name=part_name,
            details=details,
        )
        self.sheet_name = sheet_name


class MalformedPartError(DocumentError):
    """Raised when an XML part is not well-formed."""

    def __init__(
        self,
        message: str,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.MALFORMED_PART,
            part_name=part_name,
            details=details,
        )


# =============================================================================
# Workbook Errors (E3xxx)
# =============================================================================


class WorkbookError(ExcelMacrosError):
    """Base class for workbook session errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name


class SheetNotFoundError(WorkbookError):
    """Raised when a sheet name is not present in the workbook."""

    def __init__(
        self,
        sheet_name: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the sheet name.

        Args:
            sheet_name: The sheet name that was not found.
            message: Optional custom message.
            details: Additional details.
        """
        message = message or f"Sheet '{sheet_name}' not found in workbook"
        super().__init__(
            message=message,
            error_code=ErrorCode.SHEET_NOT_FOUND,
            sheet_name=sheet_name,
            details=details,
        )


class InvalidCellReferenceError(WorkbookError):
    """Raised when a cell reference is not <letters><digits> with row >= 1."""

    def __init__(
        self,
        reference: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the rejected reference.

        Args:
            reference: The reference text that failed to parse.
            reason: Optional explanation appended to the message.
            details: Additional details.
        """
        details = details or {}
        details["reference"] = reference
        message = f"Invalid cell reference: {reference}"
        if reason:
            message = f"{message} - {reason}"
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_CELL_REFERENCE,
            details=details,
        )
        self.reference = reference


class InvalidCellValueError(WorkbookError):
    """Raised when a value cannot be stored in an XML text node."""

    def __init__(
        self,
        reference: str,
        reason: str,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["reference"] = reference
        super().__init__(
            message=f"Invalid value for cell {reference}: {reason}",
            error_code=ErrorCode.INVALID_CELL_VALUE,
            sheet_name=sheet_name,
            details=details,
        )
        self.reference = reference


class WorkbookNotLoadedError(WorkbookError):
    """Raised when a session operation runs before the workbook is read."""

    def __init__(self, operation: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["operation"] = operation
        super().__init__(
            message=f"Workbook must be read before calling {operation}()",
            error_code=ErrorCode.WORKBOOK_NOT_LOADED,
            details=details,
        )
        self.operation = operation
