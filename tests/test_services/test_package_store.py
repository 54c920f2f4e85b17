"""Tests for PackageStore open/write and the Package part container."""

from __future__ import annotations

import os
import zipfile
from pathlib import Path

import pytest

from excel_macros.config import Settings
from excel_macros.models import PartKind
from excel_macros.services.package_store import Package, PackageStore
from excel_macros.utils.exceptions import (
    OutputValidationError,
    PackageOpenError,
    PackageTooLargeError,
    PartNotFoundError,
)
from tests.fixtures import (
    VBA_PROJECT_BYTES,
    build_package,
    read_entries,
    workbook_parts,
)


@pytest.fixture
def store(test_settings: Settings) -> PackageStore:
    return PackageStore(test_settings)


class TestPackageStoreOpen:
    """Tests for PackageStore.open."""

    def test_reads_every_part(self, store: PackageStore, xlsm_path: Path) -> None:
        """All entries are loaded, keyed by name, in archive order."""
        package = store.open(xlsm_path)
        assert package.part_names == list(workbook_parts(macros=True))
        assert package.get_part("xl/vbaProject.bin") == VBA_PROJECT_BYTES
        assert package.source_size == xlsm_path.stat().st_size

    def test_missing_file(self, store: PackageStore, tmp_path: Path) -> None:
        with pytest.raises(PackageOpenError) as exc_info:
            store.open(tmp_path / "missing.xlsx")
        assert exc_info.value.file_path == str(tmp_path / "missing.xlsx")

    def test_not_a_zip(self, store: PackageStore, tmp_path: Path) -> None:
        """Non-archive files raise PackageOpenError with the cause chained."""
        path = tmp_path / "plain.xlsx"
        path.write_text("not a zip archive")
        with pytest.raises(PackageOpenError) as exc_info:
            store.open(path)
        assert isinstance(exc_info.value.__cause__, zipfile.BadZipFile)

    def test_too_large(self, tmp_path: Path) -> None:
        """Packages above max_package_size_mb are rejected before reading."""
        settings = Settings(_env_file=None, max_package_size_mb=1)
        big = tmp_path / "big.xlsx"
        build_package(big, {"blob.bin": os.urandom(2 * 1024 * 1024)})
        with pytest.raises(PackageTooLargeError):
            PackageStore(settings).open(big)

    def test_skips_directory_entries(self, store: PackageStore, tmp_path: Path) -> None:
        path = tmp_path / "dirs.xlsx"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("xl/", b"")
            archive.writestr("xl/workbook.xml", b"<workbook/>")
        package = store.open(path)
        assert package.part_names == ["xl/workbook.xml"]


class TestPackage:
    """Tests for Package lookups."""

    def test_get_part_missing(self, store: PackageStore, xlsx_path: Path) -> None:
        package = store.open(xlsx_path)
        with pytest.raises(PartNotFoundError) as exc_info:
            package.get_part("xl/missing.xml")
        assert exc_info.value.part_name == "xl/missing.xml"

    def test_case_insensitive_lookup(self, store: PackageStore, xlsx_path: Path) -> None:
        """Part names are matched case-insensitively, leading slash ignored."""
        package = store.open(xlsx_path)
        assert package.resolve_name("/XL/Workbook.xml") == "xl/workbook.xml"
        assert "/xl/styles.xml" in package

    def test_binary_classification(self, store: PackageStore, xlsm_path: Path) -> None:
        """Macro projects are binary; XML and relationship parts are not."""
        kinds = {part.name: PartKind.for_name(part.name) for part in store.open(xlsm_path)}
        assert kinds["xl/vbaProject.bin"] is PartKind.BINARY
        assert kinds["xl/_rels/workbook.xml.rels"] is PartKind.XML
        assert kinds["[Content_Types].xml"] is PartKind.XML

    def test_macro_detection(
        self, store: PackageStore, xlsx_path: Path, xlsm_path: Path
    ) -> None:
        assert store.open(xlsm_path).macro_part_names() == ["xl/vbaProject.bin"]
        assert store.open(xlsm_path).has_macros is True
        assert store.open(xlsx_path).has_macros is False

    def test_macro_detection_by_name_only(self, store: PackageStore, tmp_path: Path) -> None:
        """A vbaProject part with no relationship is still reported."""
        path = build_package(tmp_path / "orphan.xlsm", {"xl/vbaProject.bin": b"\x00"})
        assert store.open(path).macro_part_names() == ["xl/vbaProject.bin"]

    def test_relationships_of_part(self, store: PackageStore, xlsx_path: Path) -> None:
        package = store.open(xlsx_path)
        rels = package.relationships("xl/workbook.xml")
        assert rels.target_part("rId1") == "xl/worksheets/sheet1.xml"
        assert len(package.relationships("xl/styles.xml")) == 0

    def test_clear(self, store: PackageStore, xlsx_path: Path) -> None:
        package = store.open(xlsx_path)
        package.clear()
        assert len(package) == 0


class TestPackageStoreWrite:
    """Tests for PackageStore.write."""

    def test_no_overrides_copies_every_part(
        self, store: PackageStore, xlsm_path: Path, tmp_path: Path
    ) -> None:
        """Every entry is byte-identical and in the same order."""
        package = store.open(xlsm_path)
        output = tmp_path / "out.xlsm"
        report = store.write(package, {}, output)

        assert read_entries(output) == read_entries(xlsm_path)
        with zipfile.ZipFile(output) as archive:
            assert archive.namelist() == package.part_names
        assert report.part_count == len(package)
        assert report.validation is not None and report.validation.is_valid

    def test_preserves_entry_metadata(
        self, store: PackageStore, xlsm_path: Path, tmp_path: Path
    ) -> None:
        """Compression method and timestamps of original entries are kept."""
        package = store.open(xlsm_path)
        output = tmp_path / "out.xlsm"
        store.write(package, {}, output)

        with zipfile.ZipFile(xlsm_path) as src, zipfile.ZipFile(output) as dst:
            for original in src.infolist():
                written = dst.getinfo(original.filename)
                assert written.compress_type == original.compress_type
                assert written.date_time == original.date_time
        with zipfile.ZipFile(output) as dst:
            assert dst.getinfo("xl/vbaProject.bin").compress_type == zipfile.ZIP_STORED

    def test_override_and_append(
        self, store: PackageStore, xlsx_path: Path, tmp_path: Path
    ) -> None:
        """Known names are replaced in place; unknown names are appended."""
        package = store.open(xlsx_path)
        output = tmp_path / "out.xlsx"
        report = store.write(
            package,
            {"/xl/styles.xml": b"<styleSheet/>", "docProps/custom.xml": b"<Properties/>"},
            output,
        )

        entries = read_entries(output)
        assert entries["xl/styles.xml"] == b"<styleSheet/>"
        assert entries["docProps/custom.xml"] == b"<Properties/>"
        with zipfile.ZipFile(output) as archive:
            assert archive.namelist()[-1] == "docProps/custom.xml"
            info = archive.getinfo("docProps/custom.xml")
            assert info.compress_type == zipfile.ZIP_DEFLATED
        assert report.overridden_parts == ["xl/styles.xml"]
        assert report.appended_parts == ["docProps/custom.xml"]

    def test_overwrite_source_in_place(
        self, store: PackageStore, xlsx_path: Path
    ) -> None:
        """The output path may be the source path."""
        package = store.open(xlsx_path)
        store.write(package, {"xl/styles.xml": b"<styleSheet/>"}, xlsx_path)
        assert read_entries(xlsx_path)["xl/styles.xml"] == b"<styleSheet/>"

    def test_malformed_override_fails_validation(
        self, store: PackageStore, xlsx_path: Path, tmp_path: Path
    ) -> None:
        """A broken XML override is caught and the destination is not created."""
        package = store.open(xlsx_path)
        output = tmp_path / "out.xlsx"
        with pytest.raises(OutputValidationError) as exc_info:
            store.write(package, {"xl/styles.xml": b"<styleSheet>"}, output)
        assert not output.exists()
        assert any("xl/styles.xml" in error for error in exc_info.value.errors)

    def test_failed_write_leaves_no_temp_files(
        self, store: PackageStore, xlsx_path: Path, tmp_path: Path
    ) -> None:
        """Scratch files are removed on the failure path."""
        package = store.open(xlsx_path)
        before = set(tmp_path.iterdir())
        with pytest.raises(OutputValidationError):
            store.write(package, {"xl/styles.xml": b"<broken"}, tmp_path / "out.xlsx")
        assert set(tmp_path.iterdir()) == before

    def test_successful_write_leaves_no_temp_files(
        self, store: PackageStore, xlsx_path: Path, tmp_path: Path
    ) -> None:
        package = store.open(xlsx_path)
        store.write(package, {}, tmp_path / "out.xlsx")
        leftovers = [p for p in tmp_path.iterdir() if p.name.startswith(".excel-macros-")]
        assert leftovers == []

    def test_missing_required_part_fails_validation(
        self, store: PackageStore, xlsx_path: Path, tmp_path: Path
    ) -> None:
        package = store.open(xlsx_path)
        with pytest.raises(OutputValidationError):
            store.write(
                package, {}, tmp_path / "out.xlsx", required_parts=["xl/calcChain.xml"]
            )

    def test_validation_disabled(self, xlsx_path: Path, tmp_path: Path) -> None:
        """With validate_output off, malformed overrides are written as given."""
        settings = Settings(_env_file=None, validate_output=False)
        store = PackageStore(settings)
        package = store.open(xlsx_path)
        output = tmp_path / "out.xlsx"
        report = store.write(package, {"xl/styles.xml": b"<broken"}, output)
        assert report.validation is None
        assert read_entries(output)["xl/styles.xml"] == b"<broken"

    def test_size_warning(self, store: PackageStore, tmp_path: Path) -> None:
        """A much smaller output is reported in warnings."""
        source = build_package(
            tmp_path / "padded.xlsx",
            {"data.bin": os.urandom(64 * 1024)},
            stored=("data.bin",),
        )
        package = store.open(source)
        report = store.write(package, {"data.bin": b"x"}, tmp_path / "out.xlsx")
        assert report.size_ratio < 0.9
        assert len(report.warnings) == 1
        assert "smaller" in report.warnings[0]

    def test_empty_package(self, store: PackageStore, tmp_path: Path) -> None:
        """A package with no parts writes an empty archive."""
        report = store.write(Package([]), {}, tmp_path / "empty.zip")
        assert report.part_count == 0
        assert read_entries(tmp_path / "empty.zip") == {}
