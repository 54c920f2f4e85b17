"""Workbook manifest index: sheet names, sheet ids and worksheet part names."""

from __future__ import annotations

import posixpath
from collections.abc import Iterator
from typing import TYPE_CHECKING

from lxml import etree

from excel_macros.excel_document import SheetDescriptor
from excel_macros.services.relationships import (
    OFFICE_REL_NAMESPACES,
    XML_PARSER,
    RelationshipMap,
)
from excel_macros.utils.exceptions import ManifestParseError, SheetNotFoundError
from excel_macros.utils.logging import get_logger

if TYPE_CHECKING:
    from excel_macros.services.package_store import Package

logger = get_logger(__name__)

DEFAULT_MANIFEST_PART = "xl/workbook.xml"


class WorkbookIndex:
    """Ordered sheet descriptors of one workbook, keyed by sheet name.

    Worksheet part names are resolved through the manifest's relationships
    (``<sheet r:id=...>``). When the manifest has no relationships part, or
    a sheet carries no resolvable ``r:id``, the part name falls back to
    ``worksheets/sheet<sheetId>.xml`` next to the manifest.
    """

    def __init__(
        self,
        sheets: list[SheetDescriptor],
        manifest_part: str = DEFAULT_MANIFEST_PART,
        relationships: RelationshipMap | None = None,
    ) -> None:
        self._sheets = list(sheets)
        self._by_name = {sheet.name: sheet for sheet in self._sheets}
        self.manifest_part = manifest_part
        self.relationships = (
            relationships
            if relationships is not None
            else RelationshipMap.empty(manifest_part)
        )

    @classmethod
    def load(
        cls,
        manifest_xml: bytes,
        relationships: RelationshipMap | None = None,
        manifest_part: str = DEFAULT_MANIFEST_PART,
    ) -> WorkbookIndex:
        """Parse the manifest into ordered sheet descriptors.

        Args:
            manifest_xml: Content of the workbook manifest part.
            relationships: The manifest's relationships, if the package has them.
            manifest_part: Part name of the manifest.

        Returns:
            The loaded index.

        Raises:
            ManifestParseError: If the manifest is not well-formed, contains
                duplicate sheet names, or has no sheet entry with both a
                name and a sheetId.
        """
        if isinstance(manifest_xml, str):
            manifest_xml = manifest_xml.encode("utf-8")
        try:
            root = etree.fromstring(manifest_xml, XML_PARSER)
        except etree.XMLSyntaxError as exc:
            raise ManifestParseError(
                f"Workbook manifest is not well-formed: {exc}", part_name=manifest_part
            ) from exc

        rels = (
            relationships
            if relationships is not None
            else RelationshipMap.empty(manifest_part)
        )
        sheets: list[SheetDescriptor] = []
        seen: set[str] = set()
        for node in root.iterfind("{*}sheets/{*}sheet"):
            name = node.get("name")
            sheet_id = node.get("sheetId")
            if not name or not sheet_id:
                logger.debug("Skipping sheet entry without name or sheetId")
                continue
            if name in seen:
                raise ManifestParseError(
                    f"Duplicate sheet name in manifest: {name}",
                    part_name=manifest_part,
                )
            seen.add(name)

            rel_id = _relationship_id(node)
            part_name, kind = cls._resolve(rels, rel_id, sheet_id, manifest_part)
            sheets.append(
                SheetDescriptor(
                    name=name,
                    sheet_id=sheet_id,
                    relationship_id=rel_id,
                    part_name=part_name,
                    kind=kind,
                )
            )

        if not sheets:
            raise ManifestParseError(
                "Workbook manifest has no resolvable sheet entries",
                part_name=manifest_part,
            )
        return cls(sheets, manifest_part=manifest_part, relationships=rels)

    @classmethod
    def from_package(cls, package: Package) -> WorkbookIndex:
        """Locate the manifest through the package relationships and load it."""
        manifest_part = locate_manifest(package)
        return cls.load(
            package.get_part(manifest_part),
            relationships=package.relationships(manifest_part),
            manifest_part=manifest_part,
        )

    @staticmethod
    def _resolve(
        rels: RelationshipMap,
        rel_id: str | None,
        sheet_id: str,
        manifest_part: str,
    ) -> tuple[str, str]:
        if rel_id is not None:
            rel = rels.get(rel_id)
            target = rels.target_part(rel_id)
            if rel is not None and target is not None:
                return target, rel.kind
            if len(rels):
                logger.warning(
                    "Sheet relationship not found, using naming convention",
                    sheet_id=sheet_id,
                    relationship_id=rel_id,
                )
        return conventional_part_name(sheet_id, manifest_part), "worksheet"

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    @property
    def sheets(self) -> list[SheetDescriptor]:
        return list(self._sheets)

    @property
    def names(self) -> list[str]:
        return [sheet.name for sheet in self._sheets]

    def __len__(self) -> int:
        return len(self._sheets)

    def __iter__(self) -> Iterator[SheetDescriptor]:
        return iter(self._sheets)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> SheetDescriptor:
        """Return the descriptor for a sheet name.

        Raises:
            SheetNotFoundError: If the manifest has no such sheet.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise SheetNotFoundError(name) from None

    def resolve_part_name(self, sheet_id: str) -> str:
        """Return the worksheet part name for a sheet id.

        Raises:
            SheetNotFoundError: If no manifest entry carries this sheet id.
        """
        for sheet in self._sheets:
            if sheet.sheet_id == sheet_id:
                return sheet.part_name or conventional_part_name(
                    sheet_id, self.manifest_part
                )
        raise SheetNotFoundError(
            sheet_id, message=f"No sheet with sheetId {sheet_id} in workbook"
        )


def _relationship_id(node: etree._Element) -> str | None:
    for namespace in OFFICE_REL_NAMESPACES:
        value = node.get(f"{{{namespace}}}id")
        if value:
            return value
    return None


def conventional_part_name(sheet_id: str, manifest_part: str = DEFAULT_MANIFEST_PART) -> str:
    """``sheet<id>.xml`` under the manifest's ``worksheets`` directory."""
    base = posixpath.dirname(manifest_part)
    return posixpath.join(base, "worksheets", f"sheet{sheet_id}.xml")


def locate_manifest(package: Package) -> str:
    """Find the workbook part via the root officeDocument relationship."""
    for target in package.relationships("").targets_of_kind("officeDocument"):
        name = package.resolve_name(target)
        if name is not None:
            return name
    return package.resolve_name(DEFAULT_MANIFEST_PART) or DEFAULT_MANIFEST_PART
