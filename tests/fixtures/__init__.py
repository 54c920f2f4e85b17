"""Hand-written OOXML parts and helpers for building test packages.

Example usage:
    from tests.fixtures import build_package, workbook_parts

    path = build_package(tmp_path / "book.xlsm", workbook_parts(macros=True))
"""

from __future__ import annotations

import zipfile
from pathlib import Path

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

# Stand-in for a compound-file macro project: only its bytes matter
VBA_PROJECT_BYTES = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + bytes(range(256)) * 8

CONTENT_TYPES_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
<Default Extension="xml" ContentType="application/xml"/>
<Default Extension="bin" ContentType="application/vnd.ms-office.vbaProject"/>
<Override PartName="/xl/workbook.xml" ContentType="application/vnd.ms-excel.sheet.macroEnabled.main+xml"/>
<Override PartName="/xl/worksheets/sheet1.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>
<Override PartName="/xl/worksheets/sheet2.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>
<Override PartName="/xl/styles.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.styles+xml"/>
<Override PartName="/xl/sharedStrings.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sharedStrings+xml"/>
</Types>"""

ROOT_RELS_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="{PKG_REL_NS}">
<Relationship Id="rId1" Type="{REL_NS}/officeDocument" Target="xl/workbook.xml"/>
</Relationships>"""

WORKBOOK_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">
<sheets>
<sheet name="Summary" sheetId="1" r:id="rId1"/>
<sheet name="Data" sheetId="2" r:id="rId2"/>
</sheets>
</workbook>"""

WORKBOOK_RELS_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="{PKG_REL_NS}">
<Relationship Id="rId1" Type="{REL_NS}/worksheet" Target="worksheets/sheet1.xml"/>
<Relationship Id="rId2" Type="{REL_NS}/worksheet" Target="worksheets/sheet2.xml"/>
<Relationship Id="rId3" Type="{REL_NS}/styles" Target="styles.xml"/>
<Relationship Id="rId4" Type="{REL_NS}/sharedStrings" Target="sharedStrings.xml"/>
</Relationships>"""

VBA_RELATIONSHIP = (
    '<Relationship Id="rId5" '
    'Type="http://schemas.microsoft.com/office/2006/relationships/vbaProject" '
    'Target="vbaProject.bin"/>'
)

SUMMARY_SHEET_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<worksheet xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">
<dimension ref="A1:B2"/>
<sheetData>
<row r="1"><c r="A1" t="s"><v>0</v></c><c r="B1"><v>42</v></c></row>
<row r="2"><c r="A2" s="2"><f>B1*2</f><v>84</v></c><c r="B2" t="s"><v>1</v></c></row>
</sheetData>
</worksheet>"""

DATA_SHEET_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<worksheet xmlns="{MAIN_NS}">
<sheetData>
<row r="1"><c r="A1" t="inlineStr"><is><t>Inline</t></is></c><c r="B1" s="3"/></row>
<row r="3"><c r="C3"><v>3.5</v></c></row>
</sheetData>
</worksheet>"""

SHARED_STRINGS_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<sst xmlns="{MAIN_NS}" count="2" uniqueCount="2">
<si><t>Hello</t></si>
<si><r><t>Wor</t></r><r><rPr><b/></rPr><t>ld</t></r><rPh sb="0" eb="1"><t>x</t></rPh></si>
</sst>"""

STYLES_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<styleSheet xmlns="{MAIN_NS}">
<cellXfs count="4"><xf/><xf/><xf/><xf/></cellXfs>
</styleSheet>"""


def workbook_parts(macros: bool = False) -> dict[str, bytes]:
    """Parts of a two-sheet workbook, optionally with a macro project."""
    workbook_rels = WORKBOOK_RELS_XML
    if macros:
        workbook_rels = workbook_rels.replace(
            "</Relationships>", f"{VBA_RELATIONSHIP}\n</Relationships>"
        )
    parts = {
        "[Content_Types].xml": CONTENT_TYPES_XML,
        "_rels/.rels": ROOT_RELS_XML,
        "xl/workbook.xml": WORKBOOK_XML,
        "xl/_rels/workbook.xml.rels": workbook_rels,
        "xl/worksheets/sheet1.xml": SUMMARY_SHEET_XML,
        "xl/worksheets/sheet2.xml": DATA_SHEET_XML,
        "xl/styles.xml": STYLES_XML,
        "xl/sharedStrings.xml": SHARED_STRINGS_XML,
    }
    encoded = {name: text.encode("utf-8") for name, text in parts.items()}
    if macros:
        encoded["xl/vbaProject.bin"] = VBA_PROJECT_BYTES
    return encoded


def build_package(
    path: Path,
    parts: dict[str, bytes],
    stored: tuple[str, ...] = (),
) -> Path:
    """Write ``parts`` to a ZIP archive at ``path``.

    Parts named in ``stored`` are written uncompressed; the rest are deflated.
    """
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in parts.items():
            info = zipfile.ZipInfo(name, (2024, 1, 15, 12, 0, 0))
            info.compress_type = (
                zipfile.ZIP_STORED if name in stored else zipfile.ZIP_DEFLATED
            )
            archive.writestr(info, data)
    return path


def read_entries(path: Path) -> dict[str, bytes]:
    """All entries of an archive, by name."""
    with zipfile.ZipFile(path) as archive:
        return {name: archive.read(name) for name in archive.namelist()}
