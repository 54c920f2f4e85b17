"""Services for reading, editing and writing spreadsheet packages."""

from excel_macros.services.mutation_engine import MutationEngine
from excel_macros.services.package_store import Package, PackageStore
from excel_macros.services.sheet_document import SheetDocument
from excel_macros.services.workbook_index import WorkbookIndex

__all__ = [
    "MutationEngine",
    "Package",
    "PackageStore",
    "SheetDocument",
    "WorkbookIndex",
]
