"""Tests for cell reference parsing."""

import pytest

from excel_macros.cell_address import CellAddress
from excel_macros.utils.exceptions import ErrorCode, InvalidCellReferenceError


class TestCellAddressParse:
    """Tests for CellAddress.parse."""

    def test_simple_reference(self) -> None:
        """Should split letters and digits."""
        address = CellAddress.parse("B12")
        assert address.column == "B"
        assert address.row == 12

    def test_multi_letter_column(self) -> None:
        """Should accept multi-letter columns."""
        address = CellAddress.parse("XFD1048576")
        assert address.column == "XFD"
        assert address.row == 1048576

    def test_round_trip_to_string(self) -> None:
        """str() should give back the canonical reference."""
        assert str(CellAddress.parse("AA7")) == "AA7"

    def test_leading_zero_is_canonicalized(self) -> None:
        """Row digits are interpreted as an integer."""
        assert str(CellAddress.parse("A01")) == "A1"

    @pytest.mark.parametrize(
        "ref",
        ["", "1A", "A0", "InvalidRef", "a1", "A", "12", "A1B", " A1", "A1 ", "A-1", "A00"],
    )
    def test_rejects_malformed_references(self, ref: str) -> None:
        """Malformed references raise InvalidCellReferenceError."""
        with pytest.raises(InvalidCellReferenceError) as exc_info:
            CellAddress.parse(ref)
        assert exc_info.value.reference == ref
        assert exc_info.value.error_code == ErrorCode.INVALID_CELL_REFERENCE

    def test_row_zero_message(self) -> None:
        """Row 0 should explain the positive-row rule."""
        with pytest.raises(InvalidCellReferenceError, match="Row must be a positive"):
            CellAddress.parse("A0")

    def test_rejects_non_string(self) -> None:
        """Non-string references are rejected."""
        with pytest.raises(InvalidCellReferenceError):
            CellAddress.parse(11)  # type: ignore[arg-type]


class TestCellAddressHelpers:
    """Tests for coerce, column_index and equality."""

    def test_coerce_passes_address_through(self) -> None:
        """coerce should return an existing address unchanged."""
        address = CellAddress("C", 3)
        assert CellAddress.coerce(address) is address

    def test_coerce_parses_string(self) -> None:
        """coerce should parse strings."""
        assert CellAddress.coerce("C3") == CellAddress("C", 3)

    @pytest.mark.parametrize(
        ("column", "index"),
        [("A", 1), ("Z", 26), ("AA", 27), ("AZ", 52), ("BA", 53), ("XFD", 16384)],
    )
    def test_column_index(self, column: str, index: int) -> None:
        """Columns are numbered base-26 from A=1."""
        assert CellAddress(column, 1).column_index == index

    def test_addresses_are_hashable(self) -> None:
        """Equal addresses should collapse in a set."""
        assert len({CellAddress.parse("A1"), CellAddress.parse("A01")}) == 1

    @pytest.mark.parametrize(
        ("index", "column"),
        [(1, "A"), (26, "Z"), (27, "AA"), (52, "AZ"), (53, "BA"), (16384, "XFD")],
    )
    def test_from_index(self, index: int, column: str) -> None:
        """from_index is the inverse of column_index."""
        address = CellAddress.from_index(index, 4)
        assert address == CellAddress(column, 4)
        assert address.column_index == index

    @pytest.mark.parametrize(("index", "row"), [(0, 1), (1, 0)])
    def test_from_index_rejects_non_positive(self, index: int, row: int) -> None:
        with pytest.raises(InvalidCellReferenceError):
            CellAddress.from_index(index, row)
