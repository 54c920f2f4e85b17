"""Dataclasses representing the cell and sheet model of a workbook."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

ERROR_VALUES = frozenset(
    {"#NULL!", "#DIV/0!", "#VALUE!", "#REF!", "#NAME?", "#NUM!", "#N/A", "#GETTING_DATA"}
)


class CellType(str, Enum):
    """Cell type, valued by the OOXML ``t`` attribute code."""

    STRING = "s"
    INLINE_STRING = "inlineStr"
    FORMULA_RESULT = "str"
    NUMBER = "n"
    BOOLEAN = "b"
    ERROR = "e"
    DATE = "d"

    @classmethod
    def from_attribute(cls, value: str | None) -> CellType:
        """Map a ``t`` attribute to a CellType (absent or unknown means number)."""
        if value is None:
            return cls.NUMBER
        try:
            return cls(value)
        except ValueError:
            return cls.NUMBER

    def accepts(self, value: str) -> bool:
        """Whether ``value`` is valid cell content for this type."""
        if self is CellType.NUMBER:
            return NUMBER_RE.fullmatch(value) is not None
        if self is CellType.BOOLEAN:
            return value in ("0", "1")
        if self is CellType.ERROR:
            return value in ERROR_VALUES
        if self is CellType.DATE:
            try:
                datetime.fromisoformat(value)
            except ValueError:
                return False
        return True


@dataclass
class CellRecord:
    """Represents the content of a single addressable cell."""

    value: str
    type: CellType
    formula: str | None = None
    style: str | None = None


@dataclass(frozen=True)
class SheetDescriptor:
    """Represents one sheet entry of the workbook manifest."""

    name: str
    sheet_id: str
    relationship_id: str | None = None
    part_name: str | None = None
    kind: str = "worksheet"

    @property
    def is_worksheet(self) -> bool:
        return self.kind == "worksheet"
