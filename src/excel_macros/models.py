"""Pydantic models and enums shared across the package."""

from enum import Enum

from pydantic import BaseModel, Field

XML_PART_EXTENSIONS = (".xml", ".rels", ".vml")


class CellWriteMode(str, Enum):
    """How a cell's content is encoded when it is overwritten."""

    OVERWRITE_STRING = "overwrite_string"
    INLINE_STRING = "inline_string"
    PRESERVE_TYPE = "preserve_type"


class PartKind(str, Enum):
    """Classification of a package part."""

    XML = "xml"
    BINARY = "binary"

    @classmethod
    def for_name(cls, part_name: str) -> "PartKind":
        """Classify a part as XML or opaque binary from its name."""
        if part_name.lower().endswith(XML_PART_EXTENSIONS):
            return cls.XML
        return cls.BINARY


class WorkbookSummary(BaseModel):
    """Result of reading a workbook package."""

    file_path: str = Field(..., description="Path of the package that was read")
    sheet_names: list[str] = Field(
        default_factory=list, description="Sheet names in manifest order"
    )
    sheet_count: int = Field(..., description="Number of sheets in the manifest")
    part_count: int = Field(..., description="Number of parts in the package")
    has_macros: bool = Field(
        default=False, description="Whether the package carries a macro project"
    )


class ValidationReport(BaseModel):
    """Structural validation result for a written package."""

    is_valid: bool = Field(..., description="True when no errors were found")
    errors: list[str] = Field(default_factory=list, description="Validation errors")
    missing_parts: list[str] = Field(
        default_factory=list, description="Original parts absent from the output"
    )
    malformed_parts: list[str] = Field(
        default_factory=list, description="XML parts that failed to parse"
    )
    altered_parts: list[str] = Field(
        default_factory=list,
        description="Passthrough parts whose bytes differ from the input",
    )


class WriteReport(BaseModel):
    """Summary of a completed package write."""

    output_path: str = Field(..., description="Destination of the new package")
    input_size: int = Field(..., description="Size of the source package in bytes")
    output_size: int = Field(..., description="Size of the written package in bytes")
    part_count: int = Field(..., description="Number of parts written")
    overridden_parts: list[str] = Field(
        default_factory=list, description="Original parts replaced by overrides"
    )
    appended_parts: list[str] = Field(
        default_factory=list, description="New parts added by overrides"
    )
    warnings: list[str] = Field(default_factory=list, description="Size warnings")
    validation: ValidationReport | None = Field(
        default=None, description="Output validation result, when enabled"
    )

    @property
    def size_ratio(self) -> float:
        """Output size relative to input size."""
        if self.input_size == 0:
            return 1.0
        return self.output_size / self.input_size
