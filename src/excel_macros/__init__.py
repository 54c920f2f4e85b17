"""Excel Macros - cell editing for spreadsheet packages that preserves macros."""

from excel_macros.cell_address import CellAddress
from excel_macros.config import Settings
from excel_macros.excel_document import CellRecord, CellType, SheetDescriptor
from excel_macros.models import CellWriteMode, WorkbookSummary, WriteReport
from excel_macros.workbook import ExcelWorkbook

__all__ = [
    "CellAddress",
    "CellRecord",
    "CellType",
    "CellWriteMode",
    "ExcelWorkbook",
    "Settings",
    "SheetDescriptor",
    "WorkbookSummary",
    "WriteReport",
]
__version__ = "0.1.0"
