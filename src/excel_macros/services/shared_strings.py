"""Read-only shared-strings table lookup."""

from __future__ import annotations

from lxml import etree

from excel_macros.services.relationships import XML_PARSER
from excel_macros.utils.exceptions import MalformedPartError


class SharedStringTable:
    """Text of each ``<si>`` entry of a shared-strings part, by index.

    Rich-text runs are concatenated; phonetic runs (``<rPh>``) are ignored.
    """

    def __init__(self, strings: list[str] | None = None) -> None:
        self._strings = list(strings or [])

    @classmethod
    def from_xml(cls, xml_content: bytes, part_name: str | None = None) -> SharedStringTable:
        """Parse a shared-strings part.

        Raises:
            MalformedPartError: If the part is not well-formed XML.
        """
        try:
            root = etree.fromstring(xml_content, XML_PARSER)
        except etree.XMLSyntaxError as exc:
            raise MalformedPartError(
                f"Shared strings part is not well-formed: {exc}", part_name=part_name
            ) from exc

        strings = []
        for item in root.iterfind("{*}si"):
            texts = [
                node.text or ""
                for node in item.iter("{*}t")
                if etree.QName(node.getparent()).localname != "rPh"
            ]
            strings.append("".join(texts))
        return cls(strings)

    def __len__(self) -> int:
        return len(self._strings)

    def lookup(self, index: int | str) -> str | None:
        """Return the string at ``index``, or None when it is out of range."""
        try:
            position = int(index)
        except (TypeError, ValueError):
            return None
        if 0 <= position < len(self._strings):
            return self._strings[position]
        return None
