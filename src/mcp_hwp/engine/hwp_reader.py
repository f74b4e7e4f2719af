"""Read-only HWP 5.x (OLE2 compound file) reader."""

from __future__ import annotations

import re
import struct
import zlib
from dataclasses import dataclass
from io import BytesIO
from typing import Iterator, List, Optional

import olefile

from .errors import EncryptedDocumentError, MalformedDocumentError, UnsupportedFeatureError
from .model import CellSpan, DocumentHandle, EmbeddedImage, Paragraph, Section, TableData

HWP_SIGNATURE = b"HWP Document File"

FLAG_COMPRESSED = 0x01
FLAG_PASSWORD = 0x02
FLAG_DISTRIBUTION = 0x04

HWPTAG_BEGIN = 0x10
TAG_PARA_HEADER = HWPTAG_BEGIN + 50
TAG_PARA_TEXT = HWPTAG_BEGIN + 51
TAG_CTRL_HEADER = HWPTAG_BEGIN + 55
TAG_LIST_HEADER = HWPTAG_BEGIN + 56
TAG_TABLE = HWPTAG_BEGIN + 61

CTRL_TABLE = b" lbt"
PAGE_BREAK_BIT = 0x04

# Control characters occupying a single wchar; every other code below 32 spans 8 wchars.
_CHAR_CONTROLS = frozenset({0, 10, 13, 24, 25, 26, 27, 28, 29, 30, 31})


@dataclass(slots=True)
class FileHeader:
    version: str
    compressed: bool
    encrypted: bool
    distribution: bool


@dataclass(slots=True)
class Record:
    tag: int
    level: int
    payload: bytes


def is_hwp(data: bytes) -> bool:
    return data[:8] == olefile.MAGIC


def parse_file_header(raw: bytes) -> FileHeader:
    if len(raw) < 40 or not raw.startswith(HWP_SIGNATURE):
        raise MalformedDocumentError("FileHeader signature is missing")
    version_raw, flags = struct.unpack_from("<II", raw, 32)
    version = ".".join(str((version_raw >> shift) & 0xFF) for shift in (24, 16, 8, 0))
    return FileHeader(
        version=version,
        compressed=bool(flags & FLAG_COMPRESSED),
        encrypted=bool(flags & FLAG_PASSWORD),
        distribution=bool(flags & FLAG_DISTRIBUTION),
    )


def iter_records(stream: bytes) -> Iterator[Record]:
    """Split a record stream into ``(tag, level, payload)`` records."""
    offset = 0
    total = len(stream)
    while offset + 4 <= total:
        (header,) = struct.unpack_from("<I", stream, offset)
        offset += 4
        tag = header & 0x3FF
        level = (header >> 10) & 0x3FF
        size = (header >> 20) & 0xFFF
        if size == 0xFFF:
            if offset + 4 > total:
                raise MalformedDocumentError("truncated record header")
            (size,) = struct.unpack_from("<I", stream, offset)
            offset += 4
        if offset + size > total:
            raise MalformedDocumentError(f"record tag {tag} overruns its stream")
        yield Record(tag=tag, level=level, payload=stream[offset : offset + size])
        offset += size


def decode_para_text(payload: bytes) -> str:
    """Decode a PARA_TEXT payload, dropping inline and extended controls."""
    chars: List[str] = []
    count = len(payload) // 2
    index = 0
    while index < count:
        (code,) = struct.unpack_from("<H", payload, index * 2)
        if code >= 32:
            chars.append(chr(code))
            index += 1
            continue
        if code in _CHAR_CONTROLS:
            if code == 10:
                chars.append("\n")
            elif code == 13:
                break
            index += 1
            continue
        if code == 9:
            chars.append("\t")
        index += 8
    text = "".join(chars)
    # Surrogate pairs arrive as two wchars.
    return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")


def _inflate(raw: bytes) -> bytes:
    try:
        return zlib.decompress(raw, -15)
    except zlib.error as exc:
        raise MalformedDocumentError(f"section stream is not a valid deflate stream: {exc}") from exc


def _section_number(parts: List[str]) -> int:
    return int(re.sub(r"[^0-9]", "", parts[1]) or "0")


def _iter_section_streams(ole: olefile.OleFileIO) -> List[List[str]]:
    names = [
        parts
        for parts in ole.listdir(streams=True, storages=False)
        if len(parts) == 2 and parts[0] == "BodyText" and parts[1].startswith("Section")
    ]
    names.sort(key=_section_number)
    return names


class _TableCollector:
    def __init__(self, level: int) -> None:
        self.level = level
        self.row_count = 0
        self.col_count = 0
        self.cells: List[tuple[int, int, int, int, List[str]]] = []

    def start_cell(self, payload: bytes) -> None:
        # LIST_HEADER: paragraph count, reserved, list flags, then the cell address block.
        if len(payload) >= 16:
            col, row, col_span, row_span = struct.unpack_from("<HHHH", payload, 8)
        else:
            col, row, col_span, row_span = len(self.cells), 0, 1, 1
        self.cells.append((row, col, max(row_span, 1), max(col_span, 1), []))

    def add_text(self, text: str) -> None:
        if self.cells:
            self.cells[-1][4].append(text)

    def finish(self) -> TableData:
        rows = max(self.row_count, max((cell[0] + cell[2] for cell in self.cells), default=0))
        cols = max(self.col_count, max((cell[1] + cell[3] for cell in self.cells), default=0))
        grid = [["" for _ in range(cols)] for _ in range(rows)]
        spans: List[CellSpan] = []
        for row, col, row_span, col_span, texts in self.cells:
            grid[row][col] = "\n".join(texts)
            if row_span > 1 or col_span > 1:
                spans.append(CellSpan(row=row, col=col, row_span=row_span, col_span=col_span))
        return TableData(rows=grid, spans=spans, cells_count=len(self.cells))


def parse_section(stream: bytes) -> Section:
    section = Section()
    current: Optional[Paragraph] = None
    table: Optional[_TableCollector] = None
    in_cell_paragraph = False

    for record in iter_records(stream):
        if table is not None and record.level <= table.level:
            if current is not None:
                current.tables.append(table.finish())
            table = None

        if record.tag == TAG_PARA_HEADER:
            if record.level == 0:
                current = Paragraph(text="")
                flags = record.payload[11] if len(record.payload) > 11 else 0
                current.page_break = bool(flags & PAGE_BREAK_BIT)
                section.paragraphs.append(current)
                in_cell_paragraph = False
            else:
                in_cell_paragraph = table is not None
        elif record.tag == TAG_PARA_TEXT:
            text = decode_para_text(record.payload)
            if in_cell_paragraph and table is not None:
                table.add_text(text)
            elif record.level == 1 and current is not None:
                current.text += text
        elif record.tag == TAG_CTRL_HEADER and record.payload[:4] == CTRL_TABLE and table is None:
            table = _TableCollector(record.level)
        elif record.tag == TAG_TABLE and table is not None and len(record.payload) >= 8:
            table.row_count, table.col_count = struct.unpack_from("<HH", record.payload, 4)
        elif record.tag == TAG_LIST_HEADER and table is not None:
            table.start_cell(record.payload)

    if table is not None and current is not None:
        current.tables.append(table.finish())
    return section


def _read_images(ole: olefile.OleFileIO, compressed: bool, warnings: List[str]) -> List[EmbeddedImage]:
    images: List[EmbeddedImage] = []
    for parts in ole.listdir(streams=True, storages=False):
        if len(parts) != 2 or parts[0] != "BinData":
            continue
        name = parts[1]
        stem, _, extension = name.partition(".")
        bin_id = int(re.sub(r"[^0-9A-Fa-f]", "", stem.upper().replace("BIN", "")) or "0", 16)
        raw = ole.openstream(parts).read()
        data = raw
        if compressed:
            try:
                data = zlib.decompress(raw, -15)
            except zlib.error:
                warnings.append(f"BinData/{name} is stored uncompressed")
        images.append(EmbeddedImage(bin_id=bin_id, extension=extension.lower(), data=data))
    images.sort(key=lambda image: image.bin_id)
    return images


def read_hwp(data: bytes) -> DocumentHandle:
    if not is_hwp(data):
        raise MalformedDocumentError("not an OLE2 compound file")

    try:
        with olefile.OleFileIO(BytesIO(data)) as ole:
            if not ole.exists("FileHeader"):
                raise MalformedDocumentError("FileHeader stream is missing")
            header = parse_file_header(ole.openstream("FileHeader").read())
            if header.encrypted:
                raise EncryptedDocumentError("document is password protected")
            if header.distribution:
                raise UnsupportedFeatureError("distribution documents are not supported")

            warnings: List[str] = []
            sections: List[Section] = []
            for parts in _iter_section_streams(ole):
                raw = ole.openstream(parts).read()
                stream = _inflate(raw) if header.compressed else raw
                sections.append(parse_section(stream))
            if not sections:
                raise MalformedDocumentError("BodyText has no Section streams")
            images = _read_images(ole, header.compressed, warnings)
    except OSError as exc:
        raise MalformedDocumentError(f"failed to read HWP streams: {exc}") from exc

    return DocumentHandle(
        format="hwp",
        sections=sections,
        images=images,
        version=header.version,
        encrypted=header.encrypted,
        compressed=header.compressed,
        warnings=warnings,
        source=data,
    )
