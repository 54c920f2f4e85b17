"""ZIP package access: open a container, expose its parts, write a new one.

The store reads every entry of the archive into memory on open, so no
extracted scratch directory exists between calls. Writing goes through a
temporary file that is moved over the destination only once it is complete
(and, when enabled, validated); the temporary file is removed on every
failure path.
"""

from __future__ import annotations

import os
import posixpath
import shutil
import tempfile
import time
import zipfile
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from excel_macros.config import Settings
from excel_macros.config import settings as default_settings
from excel_macros.models import WriteReport
from excel_macros.services.package_validator import PackageValidator
from excel_macros.services.relationships import (
    RelationshipMap,
    rels_part_for,
)
from excel_macros.utils.exceptions import (
    MalformedPartError,
    OutputValidationError,
    PackageOpenError,
    PackageTooLargeError,
    PackageWriteError,
    PartNotFoundError,
)
from excel_macros.utils.logging import get_logger, timed_operation

logger = get_logger(__name__)

_ZIP_READ_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    NotImplementedError,
    RuntimeError,
    EOFError,
    OSError,
)


def normalize_part_name(part_name: str) -> str:
    return part_name.replace("\\", "/").lstrip("/")


@dataclass
class PackagePart:
    """One archive entry: its bytes plus the original ZIP metadata."""

    name: str
    data: bytes
    info: zipfile.ZipInfo


class Package:
    """Ordered set of uniquely named parts read from one archive."""

    def __init__(
        self,
        parts: list[PackagePart],
        source_path: str | None = None,
        source_size: int = 0,
    ) -> None:
        self._parts: dict[str, PackagePart] = {part.name: part for part in parts}
        self._folded = {name.lower(): name for name in self._parts}
        self.source_path = source_path
        self.source_size = source_size

    def __iter__(self) -> Iterator[PackagePart]:
        return iter(self._parts.values())

    def __len__(self) -> int:
        return len(self._parts)

    def __contains__(self, part_name: object) -> bool:
        return isinstance(part_name, str) and self.resolve_name(part_name) is not None

    @property
    def part_names(self) -> list[str]:
        return list(self._parts)

    def resolve_name(self, part_name: str) -> str | None:
        """Return the stored name for a part (OOXML part names are case-insensitive)."""
        name = normalize_part_name(part_name)
        if name in self._parts:
            return name
        return self._folded.get(name.lower())

    def get_part(self, part_name: str) -> bytes:
        """Return the bytes of a part.

        Raises:
            PartNotFoundError: If the package has no such part.
        """
        name = self.resolve_name(part_name)
        if name is None:
            raise PartNotFoundError(part_name)
        return self._parts[name].data

    def relationships(self, source_part: str) -> RelationshipMap:
        """Relationships owned by a part ("" for the package root).

        Returns an empty map when the part has no relationships part.
        """
        rels_name = self.resolve_name(rels_part_for(source_part))
        if rels_name is None:
            return RelationshipMap.empty(source_part)
        return RelationshipMap.from_xml(source_part, self._parts[rels_name].data)

    def macro_part_names(self) -> list[str]:
        """Names of the macro project parts carried by the package."""
        found: list[str] = []
        for part in self._parts.values():
            if not part.name.endswith(".rels"):
                continue
            source = _source_part_for_rels(part.name)
            try:
                rels = self.relationships(source)
            except MalformedPartError:
                logger.warning("Skipping malformed relationships part", part=part.name)
                continue
            for target in rels.targets_of_kind("vbaProject"):
                name = self.resolve_name(target)
                if name is not None and name not in found:
                    found.append(name)

        for name in self._parts:
            basename = posixpath.basename(name).lower()
            if (
                basename.startswith("vbaproject")
                and basename.endswith(".bin")
                and name not in found
            ):
                found.append(name)
        return found

    @property
    def has_macros(self) -> bool:
        return bool(self.macro_part_names())

    def clear(self) -> None:
        """Release the part buffers."""
        self._parts.clear()
        self._folded.clear()


def _source_part_for_rels(rels_name: str) -> str:
    """Inverse of rels_part_for: ``xl/_rels/workbook.xml.rels`` -> ``xl/workbook.xml``."""
    directory, filename = posixpath.split(rels_name)
    parent = posixpath.dirname(directory)
    source = filename[: -len(".rels")]
    return posixpath.join(parent, source) if parent else source


def _clone_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    """Copy the metadata of an original entry onto a fresh ZipInfo."""
    new_info = zipfile.ZipInfo(info.filename, info.date_time)
    new_info.compress_type = info.compress_type
    new_info.comment = info.comment
    new_info.create_system = info.create_system
    new_info.create_version = info.create_version
    new_info.extract_version = info.extract_version
    new_info.external_attr = info.external_attr
    new_info.internal_attr = info.internal_attr
    return new_info


def _new_info(part_name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(part_name, time.localtime(time.time())[:6])
    info.compress_type = zipfile.ZIP_DEFLATED
    return info


class PackageStore:
    """Opens ZIP packages and writes new ones from a base package plus overrides."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings
        self.validator = PackageValidator()

    def open(self, path: str | Path) -> Package:
        """Read every entry of an archive into a Package.

        Args:
            path: Path to the ZIP container.

        Returns:
            The opened package.

        Raises:
            PackageOpenError: If the path is missing or not a readable archive.
            PackageTooLargeError: If the file exceeds max_package_size_mb.
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise PackageOpenError(
                f"Package not found: {file_path}", file_path=str(file_path)
            )

        file_size = file_path.stat().st_size
        if file_size > self.settings.max_package_size_bytes:
            raise PackageTooLargeError(
                file_size, self.settings.max_package_size_bytes, str(file_path)
            )

        with timed_operation(logger, "package_open") as metrics:
            metrics.bytes_read = file_size
            parts: list[PackagePart] = []
            try:
                with zipfile.ZipFile(file_path, "r") as archive:
                    seen: set[str] = set()
                    for info in archive.infolist():
                        if info.is_dir():
                            continue
                        if info.filename in seen:
                            raise PackageOpenError(
                                f"Duplicate part name in package: {info.filename}",
                                file_path=str(file_path),
                            )
                        seen.add(info.filename)
                        parts.append(
                            PackagePart(
                                name=info.filename,
                                data=archive.read(info),
                                info=info,
                            )
                        )
                        if self.settings.debug:
                            logger.log_part_operation(
                                "read", info.filename, size=info.file_size
                            )
            except PackageOpenError:
                raise
            except _ZIP_READ_ERRORS as exc:
                raise PackageOpenError(
                    f"Not a readable ZIP package: {exc}", file_path=str(file_path)
                ) from exc
            metrics.parts_processed = len(parts)

        return Package(parts, source_path=str(file_path), source_size=file_size)

    def write(
        self,
        package: Package,
        overrides: Mapping[str, bytes],
        output_path: str | Path,
        required_parts: list[str] | None = None,
    ) -> WriteReport:
        """Write a new archive: every original part, with overrides applied.

        Original entries keep their order and ZIP metadata; parts named in
        ``overrides`` get the override bytes; override names not present in
        the package are appended at the end.

        Args:
            package: Base package.
            overrides: Mapping of part name to replacement bytes.
            output_path: Destination archive path.
            required_parts: Parts that must exist in the output when
                validation is enabled.

        Returns:
            A WriteReport describing the written archive.

        Raises:
            PackageWriteError: If the archive cannot be written.
            OutputValidationError: If validation is enabled and fails; the
                destination is left untouched.
        """
        destination = Path(output_path)
        resolved: dict[str, bytes] = {}
        appended: dict[str, bytes] = {}
        for name, data in overrides.items():
            existing = package.resolve_name(name)
            if existing is not None:
                resolved[existing] = data
            else:
                appended[normalize_part_name(name)] = data

        temp_path: str | None = None
        with timed_operation(logger, "package_write") as metrics:
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                scratch_dir = self.settings.scratch_dir or str(destination.parent)
                fd, temp_path = tempfile.mkstemp(
                    prefix=".excel-macros-", suffix=".tmp", dir=scratch_dir
                )
                os.close(fd)

                with zipfile.ZipFile(temp_path, "w") as archive:
                    for part in package:
                        if part.name in resolved:
                            data = resolved[part.name]
                            operation = "override"
                        else:
                            data = part.data
                            operation = "copy"
                        archive.writestr(_clone_info(part.info), data)
                        if self.settings.debug:
                            logger.log_part_operation(operation, part.name, size=len(data))
                    for name, data in appended.items():
                        archive.writestr(_new_info(name), data)
                        if self.settings.debug:
                            logger.log_part_operation("append", name, size=len(data))

                output_size = os.path.getsize(temp_path)
                metrics.parts_processed = len(package) + len(appended)
                metrics.bytes_written = output_size

                report = WriteReport(
                    output_path=str(destination),
                    input_size=package.source_size,
                    output_size=output_size,
                    part_count=len(package) + len(appended),
                    overridden_parts=list(resolved),
                    appended_parts=list(appended),
                )

                if self.settings.validate_output:
                    validation = self.validator.validate(
                        temp_path,
                        package,
                        overrides={**resolved, **appended},
                        required_parts=required_parts,
                    )
                    report.validation = validation
                    if not validation.is_valid:
                        raise OutputValidationError(
                            "Written package failed validation",
                            errors=validation.errors,
                            file_path=str(destination),
                        )

                report.warnings.extend(self._size_warnings(report))
                self._move_into_place(temp_path, destination)
                temp_path = None
            except OutputValidationError:
                raise
            except (OSError, zipfile.BadZipFile, ValueError) as exc:
                raise PackageWriteError(
                    f"Failed to write package: {exc}", file_path=str(destination)
                ) from exc
            finally:
                if temp_path is not None and os.path.exists(temp_path):
                    os.remove(temp_path)

        return report

    def _size_warnings(self, report: WriteReport) -> list[str]:
        threshold = report.input_size * self.settings.size_warning_ratio
        if report.input_size and report.output_size < threshold:
            message = (
                "Output file is significantly smaller than input file; "
                "some data might have been lost"
            )
            logger.warning(
                message,
                input_size=report.input_size,
                output_size=report.output_size,
                ratio=f"{report.size_ratio:.2f}",
            )
            return [message]
        return []

    @staticmethod
    def _move_into_place(temp_path: str, destination: Path) -> None:
        try:
            os.replace(temp_path, destination)
        except OSError:
            # scratch_dir on another filesystem
            shutil.copyfile(temp_path, destination)
            os.remove(temp_path)
