"""In-memory document model shared by the readers, the renderer and the builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union


# ── reading ───────────────────────────────────────────

@dataclass(slots=True)
class CellSpan:
    row: int
    col: int
    row_span: int
    col_span: int


@dataclass(slots=True)
class TableData:
    rows: List[List[str]]
    spans: List[CellSpan] = field(default_factory=list)
    cells_count: int = 0

    def cell_texts(self) -> List[str]:
        return [text for row in self.rows for text in row]


@dataclass(slots=True)
class Paragraph:
    text: str
    tables: List[TableData] = field(default_factory=list)
    page_break: bool = False


@dataclass(slots=True)
class Section:
    paragraphs: List[Paragraph] = field(default_factory=list)


@dataclass(slots=True)
class EmbeddedImage:
    bin_id: int
    extension: str
    data: bytes

    @property
    def mime_type(self) -> Optional[str]:
        return MIME_BY_EXTENSION.get(self.extension.lower())


@dataclass(slots=True)
class DocumentHandle:
    """A parsed document. Owned by one request and discarded with it."""

    format: str
    sections: List[Section]
    images: List[EmbeddedImage] = field(default_factory=list)
    version: Optional[str] = None
    encrypted: bool = False
    compressed: bool = False
    warnings: List[str] = field(default_factory=list)
    source: bytes = b""

    @property
    def paragraph_count(self) -> int:
        return sum(len(section.paragraphs) for section in self.sections)

    def iter_paragraphs(self):
        for section_index, section in enumerate(self.sections):
            for paragraph_index, paragraph in enumerate(section.paragraphs):
                yield section_index, paragraph_index, paragraph

    def full_text(self) -> str:
        chunks = [paragraph.text for _, _, paragraph in self.iter_paragraphs()]
        for _, _, paragraph in self.iter_paragraphs():
            for table in paragraph.tables:
                chunks.extend(text for text in table.cell_texts() if text)
        return "\n".join(chunks)


@dataclass(frozen=True, slots=True)
class SvgPage:
    page: int
    svg: str


MIME_BY_EXTENSION = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
}


# ── building ──────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class TextStyle:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    font_name: Optional[str] = None
    font_size: Optional[float] = None
    color: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ParagraphOp:
    text: str
    style: Optional[TextStyle] = None


@dataclass(frozen=True, slots=True)
class HeadingOp:
    level: int
    text: str


@dataclass(frozen=True, slots=True)
class PlacedCell:
    row: int
    col: int
    row_span: int
    col_span: int
    text: str


@dataclass(frozen=True, slots=True)
class TableOp:
    row_count: int
    col_count: int
    cells: Tuple[PlacedCell, ...]
    header_row: bool = False
    column_widths: Optional[Tuple[float, ...]] = None
    border_style: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ImageOp:
    data: bytes
    mime_type: str
    width_mm: Optional[float] = None
    height_mm: Optional[float] = None
    caption: Optional[str] = None
    align: Optional[str] = None
    wrap_text: Optional[bool] = None


@dataclass(frozen=True, slots=True)
class ListOp:
    items: Tuple[str, ...]
    list_type: str = "bullet"


@dataclass(frozen=True, slots=True)
class PageBreakOp:
    pass


BlockOp = Union[ParagraphOp, HeadingOp, TableOp, ImageOp, ListOp, PageBreakOp]


@dataclass(frozen=True, slots=True)
class DocumentInstructions:
    ops: Tuple[BlockOp, ...]
    title: Optional[str] = None
    author: Optional[str] = None
    header: Optional[str] = None
    footer: Optional[str] = None


@dataclass(slots=True)
class BuildOutcome:
    data: bytes
    warnings: List[str] = field(default_factory=list)
