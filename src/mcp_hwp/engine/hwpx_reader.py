"""HWPX (OWPML zip package) reader built on python-hwpx."""

from __future__ import annotations

import logging
import re
import zipfile
from io import BytesIO
from typing import Any, List, Optional

from lxml import etree

from .compat import ensure_hwpx_compat
from .errors import EncryptedDocumentError, MalformedDocumentError
from .model import CellSpan, DocumentHandle, EmbeddedImage, Paragraph, Section, TableData

ensure_hwpx_compat()

from hwpx.document import HwpxDocument  # noqa: E402

logger = logging.getLogger(__name__)

HP_NS = "{http://www.hancom.co.kr/hwpml/2011/paragraph}"
ZIP_MAGIC = b"PK\x03\x04"


def is_hwpx(data: bytes) -> bool:
    return data[:4] == ZIP_MAGIC


def _package_version(archive: zipfile.ZipFile) -> Optional[str]:
    if "version.xml" not in archive.namelist():
        return None
    root = etree.fromstring(archive.read("version.xml"))
    parts = [root.get(name) for name in ("major", "minor", "micro", "buildNumber")]
    if not any(parts):
        return None
    return ".".join(part or "0" for part in parts)


def _is_encrypted(archive: zipfile.ZipFile) -> bool:
    if "META-INF/manifest.xml" not in archive.namelist():
        return False
    return b"encryption-data" in archive.read("META-INF/manifest.xml")


def _read_images(archive: zipfile.ZipFile) -> List[EmbeddedImage]:
    images: List[EmbeddedImage] = []
    names = sorted(name for name in archive.namelist() if name.startswith("BinData/") and not name.endswith("/"))
    for position, name in enumerate(names, start=1):
        filename = name.rsplit("/", 1)[-1]
        stem, _, extension = filename.rpartition(".")
        digits = re.sub(r"[^0-9]", "", stem)
        bin_id = int(digits) if digits else position
        images.append(EmbeddedImage(bin_id=bin_id, extension=extension.lower(), data=archive.read(name)))
    return images


def _span_of(cell: Any) -> tuple[int, int]:
    span = cell.element.find(f"{HP_NS}cellSpan")
    if span is None:
        return 1, 1
    return int(span.get("rowSpan", "1")), int(span.get("colSpan", "1"))


def _address_of(cell: Any, row_index: int, col_index: int) -> tuple[int, int]:
    address = cell.element.find(f"{HP_NS}cellAddr")
    if address is None:
        return row_index, col_index
    return int(address.get("rowAddr", row_index)), int(address.get("colAddr", col_index))


def read_table(table: Any) -> TableData:
    placed: list[tuple[int, int, int, int, str]] = []
    for row_index, row in enumerate(table.rows):
        for col_index, cell in enumerate(row.cells):
            row_span, col_span = _span_of(cell)
            if row_span == 0 or col_span == 0:
                # covered by a merged anchor
                continue
            row_addr, col_addr = _address_of(cell, row_index, col_index)
            placed.append((row_addr, col_addr, row_span, col_span, cell.text or ""))

    row_count = max((row + row_span for row, _, row_span, _, _ in placed), default=0)
    col_count = max((col + col_span for _, col, _, col_span, _ in placed), default=0)
    grid = [["" for _ in range(col_count)] for _ in range(row_count)]
    spans: List[CellSpan] = []
    for row, col, row_span, col_span, text in placed:
        grid[row][col] = text
        if row_span > 1 or col_span > 1:
            spans.append(CellSpan(row=row, col=col, row_span=row_span, col_span=col_span))
    return TableData(rows=grid, spans=spans, cells_count=len(placed))


def _read_sections(document: HwpxDocument) -> List[Section]:
    sections: List[Section] = []
    for oxml_section in document.sections:
        section = Section()
        for oxml_paragraph in oxml_section.paragraphs:
            paragraph = Paragraph(
                text=oxml_paragraph.text or "",
                page_break=oxml_paragraph.element.get("pageBreak") == "1",
            )
            for table in getattr(oxml_paragraph, "tables", []):
                paragraph.tables.append(read_table(table))
            section.paragraphs.append(paragraph)
        sections.append(section)
    return sections


def read_hwpx(data: bytes) -> DocumentHandle:
    if not is_hwpx(data):
        raise MalformedDocumentError("not a zip package")

    try:
        with zipfile.ZipFile(BytesIO(data)) as archive:
            if _is_encrypted(archive):
                raise EncryptedDocumentError("document is password protected")
            version = _package_version(archive)
            compressed = any(info.compress_type != zipfile.ZIP_STORED for info in archive.infolist())
            images = _read_images(archive)
    except zipfile.BadZipFile as exc:
        raise MalformedDocumentError(f"invalid HWPX package: {exc}") from exc
    except etree.XMLSyntaxError as exc:
        raise MalformedDocumentError(f"invalid version.xml: {exc}") from exc

    try:
        document = HwpxDocument.open(BytesIO(data))
        sections = _read_sections(document)
    except Exception as exc:  # noqa: BLE001
        logger.debug("python-hwpx rejected package", extra={"error": str(exc)})
        raise MalformedDocumentError(f"failed to parse HWPX: {exc}") from exc

    return DocumentHandle(
        format="hwpx",
        sections=sections,
        images=images,
        version=version,
        encrypted=False,
        compressed=compressed,
        source=data,
    )
