"""In-memory worksheet document: the XML tree plus a derived cell table.

The XML tree is the source of truth for serialization; the cell table is an
index of every addressable cell that has content (``<v>``, ``<is>`` or
``<f>``). Both are only mutated through this class, so they stay in step.

New rows and cells are appended at the end of their parent by default. With
``ordered_insert`` enabled they are inserted in ascending row/column order
instead, as OOXML consumers expect.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import replace

from lxml import etree

from excel_macros.cell_address import CellAddress
from excel_macros.config import Settings
from excel_macros.config import settings as default_settings
from excel_macros.excel_document import CellRecord, CellType
from excel_macros.models import CellWriteMode
from excel_macros.services.relationships import XML_PARSER
from excel_macros.utils.exceptions import (
    InvalidCellReferenceError,
    InvalidCellValueError,
    MalformedPartError,
    SheetDataMissingError,
)
from excel_macros.utils.logging import get_logger

logger = get_logger(__name__)

XML_NS = "http://www.w3.org/XML/1998/namespace"


class CellHandle:
    """Opaque handle to a cell node owned by one SheetDocument."""

    __slots__ = ("address", "created", "_element", "_owner")

    def __init__(
        self,
        address: CellAddress,
        element: etree._Element,
        owner: SheetDocument,
        created: bool,
    ) -> None:
        self.address = address
        self.created = created
        self._element = element
        self._owner = owner

    def __repr__(self) -> str:
        return f"CellHandle({self.address}, created={self.created})"


class SheetDocument:
    """One worksheet's XML tree and its cell table."""

    def __init__(
        self,
        name: str,
        tree: etree._ElementTree,
        sheet_data: etree._Element,
        cells: dict[CellAddress, CellRecord],
        part_name: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.name = name
        self.part_name = part_name
        self.settings = settings or default_settings
        self._tree = tree
        self._sheet_data = sheet_data
        self._cells = cells
        self._written: set[CellAddress] = set()

    @classmethod
    def parse(
        cls,
        xml_content: bytes | str,
        sheet_name: str,
        part_name: str | None = None,
        settings: Settings | None = None,
    ) -> SheetDocument:
        """Parse worksheet XML and derive the cell table.

        Args:
            xml_content: Worksheet part content.
            sheet_name: Name of the sheet in the manifest.
            part_name: Worksheet part name, for error reporting.
            settings: Settings controlling later writes.

        Returns:
            The parsed document.

        Raises:
            MalformedPartError: If the XML is not well-formed.
            SheetDataMissingError: If the worksheet has no sheetData section.
        """
        if isinstance(xml_content, str):
            xml_content = xml_content.encode("utf-8")
        try:
            root = etree.fromstring(xml_content, XML_PARSER)
        except etree.XMLSyntaxError as exc:
            raise MalformedPartError(
                f"Worksheet '{sheet_name}' is not well-formed: {exc}",
                part_name=part_name,
            ) from exc

        sheet_data = root.find("{*}sheetData")
        if sheet_data is None:
            raise SheetDataMissingError(sheet_name, part_name=part_name)

        cells: dict[CellAddress, CellRecord] = {}
        for row_number, row in _iter_rows(sheet_data):
            for address, cell in _iter_cells(row, row_number):
                if address is None:
                    logger.debug(
                        "Skipping cell with unparseable reference", ref=cell.get("r")
                    )
                    continue
                record = _record_from_element(cell)
                if record is not None:
                    cells[address] = record

        return cls(
            sheet_name,
            root.getroottree(),
            sheet_data,
            cells,
            part_name=part_name,
            settings=settings,
        )

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #

    @property
    def cells(self) -> dict[CellAddress, CellRecord]:
        """Copy of the cell table."""
        return {address: replace(record) for address, record in self._cells.items()}

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    @property
    def modified(self) -> bool:
        return bool(self._written)

    @property
    def written_cells(self) -> list[CellAddress]:
        """Cells overwritten during this session, in row then column order."""
        return sorted(self._written, key=lambda a: (a.row, a.column_index))

    def was_written(self, ref: str | CellAddress) -> bool:
        """Whether the cell was overwritten during this session."""
        return CellAddress.coerce(ref) in self._written

    def get_cell(self, ref: str | CellAddress) -> CellRecord | None:
        """Return the record for a cell, or None if it has no content."""
        record = self._cells.get(CellAddress.coerce(ref))
        return replace(record) if record is not None else None

    def cell_references(self) -> list[str]:
        """``r`` attributes of every cell node, in document order."""
        return [
            cell.get("r", "")
            for row in self._sheet_data.iterfind("{*}row")
            for cell in row.iterfind("{*}c")
        ]

    def row_numbers(self) -> list[str]:
        """``r`` attributes of every row node, in document order."""
        return [row.get("r", "") for row in self._sheet_data.iterfind("{*}row")]

    # ------------------------------------------------------------------ #
    # Mutation
    # ------------------------------------------------------------------ #

    def check_value(self, ref: str | CellAddress, value: str) -> None:
        """Raise InvalidCellValueError if ``value`` cannot be stored as XML text."""
        reference = str(ref)
        if not isinstance(value, str):
            raise InvalidCellValueError(
                reference,
                f"expected str, got {type(value).__name__}",
                sheet_name=self.name,
            )
        try:
            etree.Element("v").text = value
        except ValueError as exc:
            raise InvalidCellValueError(reference, str(exc), sheet_name=self.name) from exc

    def find_or_create_cell(self, ref: str | CellAddress) -> CellHandle:
        """Locate the cell node for ``ref``, creating its row and cell if needed.

        Args:
            ref: Cell reference.

        Returns:
            A handle to the cell node.

        Raises:
            InvalidCellReferenceError: If ``ref`` does not parse.
        """
        address = CellAddress.coerce(ref)
        row = self._find_row(address.row)
        if row is None:
            row = self._insert_row(address.row)

        for existing, cell in _iter_cells(row, address.row):
            if existing == address:
                return CellHandle(address, cell, self, created=False)

        cell = self._insert_cell(row, address)
        return CellHandle(address, cell, self, created=True)

    def replace_cell_content(
        self,
        handle: CellHandle,
        value: str,
        mode: CellWriteMode | None = None,
    ) -> CellRecord:
        """Overwrite a cell's content with ``value``.

        In the default mode every child of the cell is removed, the type is
        forced to shared string (``t="s"``), the style is forced to
        ``default_cell_style`` and a single ``<v>`` carries the value. Any
        formula, numeric type or style on the cell is discarded.

        ``PRESERVE_TYPE`` keeps the cell's type and style when the value is
        valid for that type; otherwise the value is written as an inline
        string with the style kept.

        Args:
            handle: Handle returned by find_or_create_cell on this document.
            value: New cell text.
            mode: Write mode; defaults to ``settings.cell_write_mode``.

        Returns:
            The record describing the cell's new content.
        """
        if handle._owner is not self:
            raise ValueError("Cell handle belongs to a different sheet document")
        self.check_value(handle.address, value)

        mode = mode or self.settings.cell_write_mode
        cell = handle._element
        previous_type = cell.get("t")

        for child in list(cell):
            cell.remove(child)
        cell.text = None

        if mode is CellWriteMode.PRESERVE_TYPE:
            cell_type = CellType.from_attribute(previous_type)
            if not cell_type.accepts(value):
                cell_type = CellType.INLINE_STRING
                cell.set("t", cell_type.value)
            style = cell.get("s")
        else:
            cell_type = (
                CellType.INLINE_STRING
                if mode is CellWriteMode.INLINE_STRING
                else CellType.STRING
            )
            style = self.settings.default_cell_style
            cell.set("t", cell_type.value)
            cell.set("s", style)

        if cell_type is CellType.INLINE_STRING:
            inline = etree.SubElement(cell, _qualified(cell, "is"))
            text = etree.SubElement(inline, _qualified(cell, "t"))
            if value != value.strip():
                text.set(f"{{{XML_NS}}}space", "preserve")
            text.text = value
        else:
            etree.SubElement(cell, _qualified(cell, "v")).text = value

        return CellRecord(value=value, type=cell_type, style=style)

    def record_cell(self, ref: str | CellAddress, record: CellRecord) -> None:
        """Store ``record`` as the cell table entry for ``ref``."""
        address = CellAddress.coerce(ref)
        self._cells[address] = replace(record)
        self._written.add(address)

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #

    def serialize(self) -> bytes:
        """Render the current tree, keeping the original XML declaration."""
        docinfo = self._tree.docinfo
        return etree.tostring(
            self._tree,
            xml_declaration=True,
            encoding=docinfo.encoding or "UTF-8",
            standalone=docinfo.standalone,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _find_row(self, row_number: int) -> etree._Element | None:
        for number, row in _iter_rows(self._sheet_data):
            if number == row_number:
                return row
        return None

    def _insert_row(self, row_number: int) -> etree._Element:
        tag = _qualified(self._sheet_data, "row")
        if self.settings.ordered_insert:
            for existing, row in _iter_rows(self._sheet_data):
                if existing > row_number:
                    new_row = etree.SubElement(self._sheet_data, tag, r=str(row_number))
                    row.addprevious(new_row)
                    return new_row
        return etree.SubElement(self._sheet_data, tag, r=str(row_number))

    def _insert_cell(self, row: etree._Element, address: CellAddress) -> etree._Element:
        tag = _qualified(row, "c")
        if self.settings.ordered_insert:
            target = address.column_index
            for existing, cell in _iter_cells(row, address.row):
                if existing is not None and existing.column_index > target:
                    new_cell = etree.SubElement(row, tag, r=str(address))
                    cell.addprevious(new_cell)
                    return new_cell
        return etree.SubElement(row, tag, r=str(address))


def _qualified(parent: etree._Element, localname: str) -> str:
    """Tag name for a child of ``parent`` in the parent's namespace."""
    namespace = etree.QName(parent).namespace
    return f"{{{namespace}}}{localname}" if namespace else localname


def _row_number(row: etree._Element) -> int | None:
    try:
        number = int(row.get("r", ""))
    except ValueError:
        return None
    return number if number >= 1 else None


def _iter_rows(sheet_data: etree._Element) -> Iterator[tuple[int, etree._Element]]:
    """Rows with their numbers.

    A row without a usable ``r`` takes the row of its first addressed cell,
    or else the number following the previous row.
    """
    previous = 0
    for row in sheet_data.iterfind("{*}row"):
        number = _row_number(row)
        if number is None:
            number = _row_from_cells(row) or previous + 1
        previous = number
        yield number, row


def _row_from_cells(row: etree._Element) -> int | None:
    for cell in row.iterfind("{*}c"):
        ref = cell.get("r")
        if ref is None:
            continue
        try:
            return CellAddress.parse(ref).row
        except InvalidCellReferenceError:
            continue
    return None


def _iter_cells(
    row: etree._Element, row_number: int
) -> Iterator[tuple[CellAddress | None, etree._Element]]:
    """Cells of a row with their addresses.

    A cell without ``r`` sits in the column after the previous cell. A cell
    whose ``r`` does not parse yields None.
    """
    previous = 0
    for cell in row.iterfind("{*}c"):
        ref = cell.get("r")
        if ref is None:
            address = CellAddress.from_index(previous + 1, row_number)
        else:
            try:
                address = CellAddress.parse(ref)
            except InvalidCellReferenceError:
                yield None, cell
                continue
        previous = address.column_index
        yield address, cell


def _record_from_element(cell: etree._Element) -> CellRecord | None:
    value_node = cell.find("{*}v")
    inline_node = cell.find("{*}is")
    formula_node = cell.find("{*}f")
    if value_node is None and inline_node is None and formula_node is None:
        return None

    if value_node is not None:
        value = value_node.text or ""
    elif inline_node is not None:
        value = "".join(
            node.text or ""
            for node in inline_node.iter("{*}t")
            if etree.QName(node.getparent()).localname != "rPh"
        )
    else:
        value = ""

    return CellRecord(
        value=value,
        type=CellType.from_attribute(cell.get("t")),
        formula=(formula_node.text or "") if formula_node is not None else None,
        style=cell.get("s"),
    )
