"""Extension points notified by a workbook session.

The session and the mutation engine never log mutations themselves; they
call these hooks. Exceptions raised by a hook propagate to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from excel_macros.utils.exceptions import ExcelMacrosError
from excel_macros.utils.logging import get_logger

if TYPE_CHECKING:
    from excel_macros.models import WorkbookSummary, WriteReport

logger = get_logger(__name__)


class WorkbookObserver:
    """No-op observer. Subclass and override the hooks you need."""

    def on_open(self, summary: WorkbookSummary) -> None:
        pass

    def on_cell_update(
        self,
        sheet_name: str,
        reference: str,
        old_value: str | None,
        new_value: str,
        cell_type: str | None = None,
    ) -> None:
        pass

    def on_write(self, report: WriteReport) -> None:
        pass

    def on_error(self, error: Exception, operation: str) -> None:
        pass


class LoggingObserver(WorkbookObserver):
    """Logs session events and keeps the per-cell change history.

    ``changes`` maps ``"Sheet!A1"`` to ``{"before": old, "after": new}``;
    repeated writes to one cell keep the first ``before`` value.
    """

    def __init__(self) -> None:
        self.changes: dict[str, dict[str, Any]] = {}

    def on_open(self, summary: WorkbookSummary) -> None:
        logger.info(
            "Workbook loaded",
            file_path=summary.file_path,
            sheets=summary.sheet_count,
            parts=summary.part_count,
            has_macros=summary.has_macros,
        )

    def on_cell_update(
        self,
        sheet_name: str,
        reference: str,
        old_value: str | None,
        new_value: str,
        cell_type: str | None = None,
    ) -> None:
        key = f"{sheet_name}!{reference}"
        before = self.changes[key]["before"] if key in self.changes else old_value
        self.changes[key] = {"before": before, "after": new_value}
        logger.log_cell_change(
            sheet_name, reference, old_value, new_value, cell_type=cell_type
        )

    def on_write(self, report: WriteReport) -> None:
        logger.info(
            "Workbook written",
            output_path=report.output_path,
            parts=report.part_count,
            overridden=len(report.overridden_parts),
            output_size=report.output_size,
        )

    def on_error(self, error: Exception, operation: str) -> None:
        if isinstance(error, ExcelMacrosError):
            logger.error(
                f"{operation} failed: {error.message}",
                error_code=error.error_code.value,
            )
        else:
            logger.error(f"{operation} failed: {error}", exc_info=True)

    def changes_for_sheet(self, sheet_name: str) -> dict[str, dict[str, Any]]:
        """Recorded changes whose key belongs to ``sheet_name``."""
        prefix = f"{sheet_name}!"
        return {
            key: change for key, change in self.changes.items() if key.startswith(prefix)
        }

    def clear(self) -> None:
        self.changes.clear()
