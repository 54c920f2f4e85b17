"""Configuration management for excel-macros.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
EXCEL_MACROS_ prefix, or via a .env file in the working directory.

Environment Variables:
    EXCEL_MACROS_LOG_LEVEL: Logging level (default: INFO)
    EXCEL_MACROS_DEBUG: Enable debug mode (default: false)
    EXCEL_MACROS_SCRATCH_DIR: Directory for temporary output files
        (default: the output file's directory)
    EXCEL_MACROS_MAX_PACKAGE_SIZE_MB: Maximum package size in MB (default: 200)
    EXCEL_MACROS_DEFAULT_CELL_STYLE: Style id written on overwritten cells
        (default: 1)
    EXCEL_MACROS_CELL_WRITE_MODE: overwrite_string, inline_string or
        preserve_type (default: overwrite_string)
    EXCEL_MACROS_ORDERED_INSERT: Insert new rows/cells in ascending order
        instead of appending (default: false)
    EXCEL_MACROS_SIZE_WARNING_RATIO: Warn when output is smaller than
        input * ratio (default: 0.9)
    EXCEL_MACROS_VALIDATE_OUTPUT: Re-open and validate the written archive
        before it replaces the destination (default: true)
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from excel_macros.models import CellWriteMode


class Settings(BaseSettings):
    """Library settings loaded from environment variables.

    Example .env file:
        EXCEL_MACROS_LOG_LEVEL=DEBUG
        EXCEL_MACROS_CELL_WRITE_MODE=inline_string
        EXCEL_MACROS_ORDERED_INSERT=true
    """

    model_config = SettingsConfigDict(
        env_prefix="EXCEL_MACROS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Level applied by configure_logging(): DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    debug: bool = False
    """Enable debug mode with per-part logging."""

    # =========================================================================
    # Package Settings
    # =========================================================================

    scratch_dir: str | None = None
    """Directory for temporary output archives (None: next to the output)."""

    max_package_size_mb: int = 200
    """Maximum size of a package accepted by open(), in megabytes."""

    # =========================================================================
    # Cell Write Settings
    # =========================================================================

    default_cell_style: str = "1"
    """Style id forced onto overwritten cells."""

    cell_write_mode: CellWriteMode = CellWriteMode.OVERWRITE_STRING
    """How replace_cell_content encodes the new value."""

    ordered_insert: bool = False
    """Insert new rows and cells in ascending order instead of appending."""

    # =========================================================================
    # Write Path Settings
    # =========================================================================

    size_warning_ratio: float = 0.9
    """Warn when the output archive is smaller than input size * ratio."""

    validate_output: bool = True
    """Re-open and validate the written archive before replacing the target."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("max_package_size_mb")
    @classmethod
    def validate_package_size(cls, v: int) -> int:
        """Validate package size limit is positive and reasonable."""
        if not 1 <= v <= 2048:
            raise ValueError(f"max_package_size_mb must be between 1 and 2048, got {v}")
        return v

    @field_validator("default_cell_style")
    @classmethod
    def validate_cell_style(cls, v: str) -> str:
        """Validate the style id is a non-negative integer string."""
        v = v.strip()
        if not (v.isascii() and v.isdecimal()):
            raise ValueError(
                f"default_cell_style must be a non-negative integer, got {v!r}"
            )
        return v

    @field_validator("size_warning_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        """Validate ratio is between 0.0 and 1.0."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"size_warning_ratio must be between 0.0 and 1.0, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_package_size_bytes(self) -> int:
        """Get max package size in bytes."""
        return self.max_package_size_mb * 1024 * 1024

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level


# Create the global settings instance
settings = Settings()
