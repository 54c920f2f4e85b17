"""Workbook session: open a package, edit cells, write a new package.

Example:
    with ExcelWorkbook.open("template.xlsm") as workbook:
        workbook.update_cell("Sheet1", "B2", "Quarterly report")
        workbook.write("report.xlsm")

Parts other than modified worksheets (manifest, styles, shared strings,
relationships, the macro project) are copied into the output unchanged.
"""

from __future__ import annotations

import posixpath
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType

from excel_macros.cell_address import CellAddress
from excel_macros.config import Settings
from excel_macros.config import settings as default_settings
from excel_macros.excel_document import CellRecord, CellType, SheetDescriptor
from excel_macros.models import WorkbookSummary, WriteReport
from excel_macros.services.mutation_engine import MutationEngine
from excel_macros.services.package_store import Package, PackageStore
from excel_macros.services.shared_strings import SharedStringTable
from excel_macros.services.sheet_document import SheetDocument
from excel_macros.services.workbook_index import WorkbookIndex
from excel_macros.utils.exceptions import (
    SheetNotFoundError,
    WorkbookNotLoadedError,
)
from excel_macros.utils.logging import LogContext, get_logger, timed_operation
from excel_macros.utils.observer import LoggingObserver, WorkbookObserver

logger = get_logger(__name__)

DEFAULT_SHARED_STRINGS_PART = "sharedStrings.xml"


class ExcelWorkbook:
    """One open-mutate-write session over a spreadsheet package.

    The package, manifest index, sheet documents and shared strings are
    created by ``read()`` and discarded by ``close()``. Nothing is shared
    between sessions.
    """

    def __init__(
        self,
        file_path: str | Path,
        settings: Settings | None = None,
        observer: WorkbookObserver | None = None,
    ) -> None:
        self.file_path = Path(file_path)
        self.settings = settings or default_settings
        self.observer = observer if observer is not None else LoggingObserver()
        self.session_id = uuid.uuid4().hex[:12]
        self.store = PackageStore(self.settings)

        self._package: Package | None = None
        self._index: WorkbookIndex | None = None
        self._sheets: dict[str, SheetDocument] = {}
        self._shared_strings = SharedStringTable()
        self._engine: MutationEngine | None = None

    @classmethod
    def open(
        cls,
        file_path: str | Path,
        settings: Settings | None = None,
        observer: WorkbookObserver | None = None,
    ) -> ExcelWorkbook:
        """Create a session and read the package at ``file_path``."""
        workbook = cls(file_path, settings=settings, observer=observer)
        workbook.read()
        return workbook

    def __enter__(self) -> ExcelWorkbook:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "loaded" if self.is_loaded else "closed"
        return f"ExcelWorkbook({str(self.file_path)!r}, {state})"

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    @contextmanager
    def _operation(self, name: str) -> Generator[None, None, None]:
        with LogContext(session_id=self.session_id, operation=name):
            try:
                yield
            except Exception as exc:
                self.observer.on_error(exc, name)
                raise

    def _require_index(self, operation: str) -> WorkbookIndex:
        if self._index is None:
            raise WorkbookNotLoadedError(operation)
        return self._index

    def _require_package(self, operation: str) -> Package:
        if self._package is None:
            raise WorkbookNotLoadedError(operation)
        return self._package

    # ------------------------------------------------------------------ #
    # Read
    # ------------------------------------------------------------------ #

    def read(self) -> WorkbookSummary:
        """Open the package and parse the manifest and every worksheet.

        Returns:
            Summary of the loaded workbook.

        Raises:
            PackageOpenError: If the file is not a readable package.
            ManifestParseError: If the manifest is malformed or lists no sheets.
            PartNotFoundError: If a listed worksheet part is absent.
            SheetDataMissingError: If a worksheet has no sheetData section.
            MalformedPartError: If a worksheet or relationships part is not
                well-formed XML.
        """
        with self._operation("read"):
            self.close()
            with timed_operation(logger, "workbook_read") as metrics:
                package = self.store.open(self.file_path)
                index = WorkbookIndex.from_package(package)

                sheets: dict[str, SheetDocument] = {}
                for descriptor in index:
                    if not descriptor.is_worksheet:
                        logger.debug(
                            "Skipping non-worksheet sheet",
                            sheet=descriptor.name,
                            kind=descriptor.kind,
                        )
                        continue
                    part_name = self._part_name(package, index, descriptor)
                    sheets[descriptor.name] = SheetDocument.parse(
                        package.get_part(part_name),
                        descriptor.name,
                        part_name=part_name,
                        settings=self.settings,
                    )
                metrics.sheets_parsed = len(sheets)
                metrics.parts_processed = len(package)
                metrics.bytes_read = package.source_size

                shared_strings = self._load_shared_strings(package, index)

            self._package = package
            self._index = index
            self._sheets = sheets
            self._shared_strings = shared_strings
            self._engine = MutationEngine(
                index, self._sheets, settings=self.settings, observer=self.observer
            )

            summary = WorkbookSummary(
                file_path=str(self.file_path),
                sheet_names=index.names,
                sheet_count=len(index),
                part_count=len(package),
                has_macros=package.has_macros,
            )
            self.observer.on_open(summary)
            return summary

    @staticmethod
    def _part_name(
        package: Package, index: WorkbookIndex, descriptor: SheetDescriptor
    ) -> str:
        part_name = descriptor.part_name or index.resolve_part_name(descriptor.sheet_id)
        return package.resolve_name(part_name) or part_name

    @staticmethod
    def _load_shared_strings(package: Package, index: WorkbookIndex) -> SharedStringTable:
        candidates = index.relationships.targets_of_kind("sharedStrings")
        candidates.append(
            posixpath.join(
                posixpath.dirname(index.manifest_part), DEFAULT_SHARED_STRINGS_PART
            )
        )
        for candidate in candidates:
            name = package.resolve_name(candidate)
            if name is not None:
                return SharedStringTable.from_xml(package.get_part(name), part_name=name)
        return SharedStringTable()

    # ------------------------------------------------------------------ #
    # Mutate
    # ------------------------------------------------------------------ #

    def update_cell(self, sheet_name: str, ref: str, value: str) -> None:
        """Overwrite one cell of a worksheet.

        Raises:
            WorkbookNotLoadedError: If ``read()`` has not been called.
            SheetNotFoundError: If the sheet is unknown or not a worksheet.
            InvalidCellReferenceError: If ``ref`` does not parse.
            InvalidCellValueError: If ``value`` cannot be stored as XML text.
        """
        with self._operation("update_cell"):
            if self._engine is None:
                raise WorkbookNotLoadedError("update_cell")
            self._engine.update_cell(sheet_name, ref, value)

    # ------------------------------------------------------------------ #
    # Write
    # ------------------------------------------------------------------ #

    def write(self, output_path: str | Path) -> WriteReport:
        """Write the workbook, with modified worksheets re-serialized.

        Args:
            output_path: Destination path; may be the source path.

        Returns:
            Report of the written package.

        Raises:
            WorkbookNotLoadedError: If ``read()`` has not been called.
            PackageWriteError: If the archive cannot be written.
            OutputValidationError: If the written archive fails validation;
                the destination is left untouched.
        """
        with self._operation("write"):
            index = self._require_index("write")
            package = self._require_package("write")

            overrides = {
                document.part_name: document.serialize()
                for document in self._sheets.values()
                if document.modified and document.part_name
            }
            required = [index.manifest_part]
            required.extend(
                document.part_name
                for document in self._sheets.values()
                if document.part_name
            )

            with timed_operation(logger, "workbook_write") as metrics:
                metrics.sheets_parsed = len(overrides)
                metrics.cells_updated = sum(
                    len(document.written_cells) for document in self._sheets.values()
                )
                report = self.store.write(
                    package, overrides, output_path, required_parts=required
                )
                metrics.bytes_written = report.output_size

            self.observer.on_write(report)
            return report

    # ------------------------------------------------------------------ #
    # Inspect
    # ------------------------------------------------------------------ #

    def list_sheets(self) -> list[str]:
        """Sheet names in manifest order."""
        with self._operation("list_sheets"):
            return self._require_index("list_sheets").names

    def sheet_count(self) -> int:
        with self._operation("sheet_count"):
            return len(self._require_index("sheet_count"))

    def has_macros(self) -> bool:
        with self._operation("has_macros"):
            return self._require_package("has_macros").has_macros

    def macro_part_names(self) -> list[str]:
        with self._operation("macro_part_names"):
            return self._require_package("macro_part_names").macro_part_names()

    def get_sheet(self, sheet_name: str) -> SheetDocument:
        """Return the parsed document for a worksheet.

        Raises:
            SheetNotFoundError: If the sheet is unknown or not a worksheet.
        """
        with self._operation("get_sheet"):
            return self._sheet("get_sheet", sheet_name)

    def get_cell(self, sheet_name: str, ref: str) -> CellRecord | None:
        """Cell record for ``ref``, or None when the cell has no content."""
        with self._operation("get_cell"):
            document = self._sheet("get_cell", sheet_name)
            return document.get_cell(CellAddress.parse(ref))

    def get_cell_text(self, sheet_name: str, ref: str) -> str | None:
        """Display text of a cell.

        Shared-string cells read from the package resolve through the shared
        strings table. Cells written during this session resolve to the value
        that was written.
        """
        with self._operation("get_cell_text"):
            document = self._sheet("get_cell_text", sheet_name)
            address = CellAddress.parse(ref)
            record = document.get_cell(address)
            if record is None:
                return None
            if record.type is CellType.STRING and not document.was_written(address):
                text = self._shared_strings.lookup(record.value)
                if text is not None:
                    return text
            return record.value

    def sheet_xml(self, sheet_name: str) -> bytes:
        """Serialized XML of a worksheet in its current state."""
        with self._operation("sheet_xml"):
            return self._sheet("sheet_xml", sheet_name).serialize()

    def _sheet(self, operation: str, sheet_name: str) -> SheetDocument:
        descriptor = self._require_index(operation).get(sheet_name)
        document = self._sheets.get(sheet_name)
        if document is None:
            raise SheetNotFoundError(
                sheet_name,
                message=f"Sheet '{sheet_name}' is not a worksheet ({descriptor.kind})",
                details={"kind": descriptor.kind},
            )
        return document

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Discard the package, sheet documents and shared strings."""
        if self._package is not None:
            self._package.clear()
        self._package = None
        self._index = None
        self._sheets = {}
        self._shared_strings = SharedStringTable()
        self._engine = None
