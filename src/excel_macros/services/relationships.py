"""Relationship (.rels) parsing and part-name resolution.

Every OOXML part may carry a relationships part (``<dir>/_rels/<name>.rels``)
that maps relationship ids to target parts. Targets are relative to the
directory of the source part unless they start with ``/``.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from urllib.parse import unquote

from lxml import etree

from excel_macros.utils.exceptions import MalformedPartError

PACKAGE_RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

# Transitional and strict namespaces for the r:id attribute on <sheet>
OFFICE_REL_NAMESPACES = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "http://purl.oclc.org/ooxml/officeDocument/relationships",
)

ROOT_RELS_PART = "_rels/.rels"

XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


@dataclass(frozen=True)
class Relationship:
    """A single <Relationship> entry."""

    id: str
    type: str
    target: str
    external: bool = False

    @property
    def kind(self) -> str:
        """Last path segment of the relationship type (e.g. ``worksheet``)."""
        return self.type.rsplit("/", 1)[-1]


def rels_part_for(part_name: str) -> str:
    """Return the relationships part name for a source part.

    ``""`` (the package itself) maps to ``_rels/.rels``.
    """
    if not part_name:
        return ROOT_RELS_PART
    directory, filename = posixpath.split(part_name)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


def resolve_target(source_part: str, target: str) -> str:
    """Resolve a relationship target against its source part.

    Args:
        source_part: Part owning the relationship ("" for the package root).
        target: Target attribute as written in the .rels part.

    Returns:
        Normalized part name without a leading slash.
    """
    target = unquote(target)
    if target.startswith("/"):
        return posixpath.normpath(target).lstrip("/")
    base = posixpath.dirname(source_part)
    joined = posixpath.join(base, target) if base else target
    return posixpath.normpath(joined)


def parse_relationships(xml_content: bytes, part_name: str = "") -> list[Relationship]:
    """Parse a .rels part into its relationships, in document order.

    Raises:
        MalformedPartError: If the part is not well-formed XML.
    """
    try:
        root = etree.fromstring(xml_content, XML_PARSER)
    except etree.XMLSyntaxError as exc:
        raise MalformedPartError(
            f"Relationships part is not well-formed: {exc}", part_name=part_name
        ) from exc

    relationships = []
    for node in root.iter(f"{{{PACKAGE_RELS_NS}}}Relationship", "Relationship"):
        rel_id = node.get("Id")
        rel_type = node.get("Type")
        target = node.get("Target")
        if not rel_id or not rel_type or target is None:
            continue
        relationships.append(
            Relationship(
                id=rel_id,
                type=rel_type,
                target=target,
                external=node.get("TargetMode") == "External",
            )
        )
    return relationships


class RelationshipMap:
    """Relationships of one source part, with targets resolved to part names."""

    def __init__(self, source_part: str, relationships: list[Relationship]) -> None:
        self.source_part = source_part
        self._by_id = {rel.id: rel for rel in relationships}

    @classmethod
    def from_xml(cls, source_part: str, xml_content: bytes) -> RelationshipMap:
        rels = parse_relationships(xml_content, rels_part_for(source_part))
        return cls(source_part, rels)

    @classmethod
    def empty(cls, source_part: str) -> RelationshipMap:
        return cls(source_part, [])

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())

    def get(self, rel_id: str) -> Relationship | None:
        return self._by_id.get(rel_id)

    def target_part(self, rel_id: str) -> str | None:
        """Resolved part name for a relationship id (None if absent or external)."""
        rel = self._by_id.get(rel_id)
        if rel is None or rel.external:
            return None
        return resolve_target(self.source_part, rel.target)

    def targets_of_kind(self, kind: str) -> list[str]:
        """Resolved part names of every internal relationship of a given kind."""
        return [
            resolve_target(self.source_part, rel.target)
            for rel in self._by_id.values()
            if rel.kind == kind and not rel.external
        ]
