"""Parsing and validation of textual cell references."""

from __future__ import annotations

import re
from dataclasses import dataclass

from excel_macros.utils.exceptions import InvalidCellReferenceError

CELL_REF_RE = re.compile(r"([A-Z]+)([0-9]+)")


@dataclass(frozen=True)
class CellAddress:
    """A validated (column, row) cell address."""

    column: str
    row: int

    @classmethod
    def parse(cls, ref: str) -> CellAddress:
        """Parse a reference such as ``"B12"``.

        Args:
            ref: One or more uppercase letters followed by one or more digits.

        Returns:
            The parsed address.

        Raises:
            InvalidCellReferenceError: If the reference is malformed or the
                row number is below 1.
        """
        if not isinstance(ref, str):
            raise InvalidCellReferenceError(str(ref), "reference must be a string")

        match = CELL_REF_RE.fullmatch(ref)
        if match is None:
            raise InvalidCellReferenceError(ref)

        column, digits = match.groups()
        row = int(digits)
        if row < 1:
            raise InvalidCellReferenceError(ref, "Row must be a positive number")
        return cls(column=column, row=row)

    @classmethod
    def coerce(cls, ref: str | CellAddress) -> CellAddress:
        if isinstance(ref, CellAddress):
            return ref
        return cls.parse(ref)

    @classmethod
    def from_index(cls, column_index: int, row: int) -> CellAddress:
        """Build an address from a 1-based column number and a row."""
        if column_index < 1 or row < 1:
            raise InvalidCellReferenceError(
                f"({column_index}, {row})", "Column and row must be positive"
            )
        letters = ""
        while column_index:
            column_index, remainder = divmod(column_index - 1, 26)
            letters = chr(ord("A") + remainder) + letters
        return cls(column=letters, row=row)

    @property
    def column_index(self) -> int:
        """1-based column number (A=1, Z=26, AA=27)."""
        index = 0
        for letter in self.column:
            index = index * 26 + (ord(letter) - ord("A") + 1)
        return index

    def __str__(self) -> str:
        return f"{self.column}{self.row}"
