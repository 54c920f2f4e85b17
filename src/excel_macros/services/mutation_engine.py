"""Cell updates against the sheet documents of one workbook session."""

from __future__ import annotations

from collections.abc import Mapping

from excel_macros.cell_address import CellAddress
from excel_macros.config import Settings
from excel_macros.config import settings as default_settings
from excel_macros.services.sheet_document import SheetDocument
from excel_macros.services.workbook_index import WorkbookIndex
from excel_macros.utils.exceptions import SheetNotFoundError
from excel_macros.utils.observer import WorkbookObserver


class MutationEngine:
    """Validates and applies single-cell overwrites.

    Every check (sheet, reference, value) runs before the worksheet tree is
    touched, so a failed update leaves both the tree and the cell table as
    they were.
    """

    def __init__(
        self,
        index: WorkbookIndex,
        sheets: Mapping[str, SheetDocument],
        settings: Settings | None = None,
        observer: WorkbookObserver | None = None,
    ) -> None:
        self.index = index
        self.sheets = sheets
        self.settings = settings or default_settings
        self.observer = observer or WorkbookObserver()

    def update_cell(self, sheet_name: str, ref: str, value: str) -> None:
        """Overwrite one cell, creating its row and cell node if needed.

        Args:
            sheet_name: Sheet name as listed in the manifest.
            ref: Cell reference such as ``"B12"``.
            value: New cell text.

        Raises:
            SheetNotFoundError: If the sheet is not in the workbook or is not
                an editable worksheet.
            InvalidCellReferenceError: If ``ref`` does not parse.
            InvalidCellValueError: If ``value`` cannot be stored as XML text.
        """
        document = self._document_for(sheet_name)
        address = CellAddress.parse(ref)
        document.check_value(address, value)

        previous = document.get_cell(address)
        handle = document.find_or_create_cell(address)
        record = document.replace_cell_content(
            handle, value, mode=self.settings.cell_write_mode
        )
        document.record_cell(address, record)

        self.observer.on_cell_update(
            sheet_name,
            str(address),
            previous.value if previous is not None else None,
            value,
            cell_type=record.type.value,
        )

    def _document_for(self, sheet_name: str) -> SheetDocument:
        descriptor = self.index.get(sheet_name)
        if not descriptor.is_worksheet:
            raise SheetNotFoundError(
                sheet_name,
                message=f"Sheet '{sheet_name}' is not a worksheet ({descriptor.kind})",
                details={"kind": descriptor.kind},
            )
        document = self.sheets.get(sheet_name)
        if document is None:
            raise SheetNotFoundError(
                sheet_name, message=f"Sheet '{sheet_name}' has no loaded worksheet part"
            )
        return document
