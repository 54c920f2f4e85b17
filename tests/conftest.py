from __future__ import annotations

from pathlib import Path

import pytest

from excel_macros.config import Settings
from excel_macros.models import CellWriteMode
from tests.fixtures import build_package, workbook_parts


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, scratch_dir=str(tmp_path))


@pytest.fixture
def inline_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        scratch_dir=str(tmp_path),
        cell_write_mode=CellWriteMode.INLINE_STRING,
    )


@pytest.fixture
def xlsx_path(tmp_path: Path) -> Path:
    """Two-sheet workbook without macros."""
    return build_package(tmp_path / "book.xlsx", workbook_parts())


@pytest.fixture
def xlsm_path(tmp_path: Path) -> Path:
    """Two-sheet workbook carrying xl/vbaProject.bin (stored uncompressed)."""
    return build_package(
        tmp_path / "book.xlsm",
        workbook_parts(macros=True),
        stored=("xl/vbaProject.bin",),
    )


@pytest.fixture
def openpyxl_path(tmp_path: Path) -> Path:
    """Workbook saved by openpyxl, with shared strings, numbers and a formula."""
    from openpyxl import Workbook

    wb = Workbook()
    ws1 = wb.active
    ws1.title = "Sheet1"
    ws1["A1"] = "Name"
    ws1["B1"] = "Amount"
    ws1["A2"] = "Alice"
    ws1["B2"] = 123.45
    ws1["C2"] = "=B2*2"
    ws2 = wb.create_sheet("Notes")
    ws2["A1"] = "Secondary"
    path = tmp_path / "openpyxl.xlsx"
    wb.save(path)
    return path
