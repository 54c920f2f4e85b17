"""Structural validation of a written package.

Re-opens an archive and checks it against the package it was built from:
every original part present, every overridden XML part well-formed, every
passthrough part byte-identical.
"""

from __future__ import annotations

import zipfile
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from lxml import etree

from excel_macros.models import PartKind, ValidationReport
from excel_macros.services.relationships import XML_PARSER

if TYPE_CHECKING:
    from excel_macros.services.package_store import Package

# Required entries that every valid spreadsheet package must contain
REQUIRED_PACKAGE_PARTS = [
    "[Content_Types].xml",
    "_rels/.rels",
]


class PackageValidator:
    """Validate an archive on disk against its source package."""

    def validate(
        self,
        archive_path: str | Path,
        source: Package,
        overrides: Mapping[str, bytes] | None = None,
        required_parts: list[str] | None = None,
    ) -> ValidationReport:
        """Validate the archive at ``archive_path``.

        Args:
            archive_path: Archive to check.
            source: Package the archive was written from.
            overrides: Parts that were replaced or appended (checked for
                well-formedness instead of byte equality).
            required_parts: Extra part names that must be present.

        Returns:
            A ValidationReport; ``is_valid`` is True when no errors were found.
        """
        overrides = overrides or {}
        errors: list[str] = []
        missing: list[str] = []
        malformed: list[str] = []
        altered: list[str] = []

        try:
            with zipfile.ZipFile(archive_path, "r") as archive:
                bad_entry = archive.testzip()
                if bad_entry is not None:
                    errors.append(f"CRC check failed for entry: {bad_entry}")
                names = set(archive.namelist())

                expected = [
                    name
                    for name in REQUIRED_PACKAGE_PARTS
                    if source.resolve_name(name) is not None
                ]
                expected.extend(required_parts or [])
                expected.extend(source.part_names)
                for name in dict.fromkeys(expected):
                    if name not in names:
                        missing.append(name)
                        errors.append(f"Missing required part: {name}")

                for part in source:
                    if part.name not in names or part.name in overrides:
                        continue
                    if archive.read(part.name) != part.data:
                        altered.append(part.name)
                        errors.append(f"Passthrough part altered: {part.name}")

                for name in overrides:
                    if name not in names:
                        missing.append(name)
                        errors.append(f"Missing overridden part: {name}")
                        continue
                    if PartKind.for_name(name) is not PartKind.XML:
                        continue
                    try:
                        etree.fromstring(archive.read(name), XML_PARSER)
                    except etree.XMLSyntaxError as exc:
                        malformed.append(name)
                        errors.append(f"Part is not well-formed XML: {name} ({exc})")
        except zipfile.BadZipFile:
            return ValidationReport(
                is_valid=False, errors=["Invalid ZIP package format"]
            )

        return ValidationReport(
            is_valid=not errors,
            errors=errors,
            missing_parts=missing,
            malformed_parts=malformed,
            altered_parts=altered,
        )
