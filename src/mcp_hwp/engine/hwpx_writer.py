"""Build HWPX packages with python-hwpx."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .compat import ensure_hwpx_compat
from .model import (
    BuildOutcome,
    DocumentHandle,
    DocumentInstructions,
    HeadingOp,
    ImageOp,
    ListOp,
    PageBreakOp,
    ParagraphOp,
    TableOp,
    TextStyle,
)

ensure_hwpx_compat()

from hwpx.document import HwpxDocument  # noqa: E402

logger = logging.getLogger(__name__)

CAPTION_PREFIX = "그림:"

TITLE_POINTS = 24
# heading sizes in points; deeper levels use the last entry
HEADING_POINTS = (24, 18, 14, 12, 11)

_IMAGE_FORMATS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/bmp": "bmp",
}
_EMBEDDABLE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "bmp", "tif", "tiff"})

_ROMAN = (
    (1000, "m"), (900, "cm"), (500, "d"), (400, "cd"), (100, "c"), (90, "xc"),
    (50, "l"), (40, "xl"), (10, "x"), (9, "ix"), (5, "v"), (4, "iv"), (1, "i"),
)
_HANGUL_ORDINALS = "가나다라마바사아자차카타파하"


class _Writer:
    """Appends blocks to a fresh document, reusing the template's empty first paragraph.

    New paragraphs are pinned to the template's paragraph and character
    shapes, so a styled, aligned or picture paragraph never leaks its
    formatting into the blocks after it.
    """

    def __init__(self) -> None:
        self.document = HwpxDocument.new()
        paragraphs = self.document.paragraphs
        first = paragraphs[0] if paragraphs else None
        self._template_paragraph_free = len(paragraphs) == 1 and not (first.text or "").strip()
        self._para_pr = first.para_pr_id_ref if first is not None else None
        self._char_pr = (first.char_pr_id_ref if first is not None else None) or "0"

    def char_style(
        self,
        *,
        bold: bool = False,
        italic: bool = False,
        underline: bool = False,
        font: Optional[str] = None,
        size: Optional[float] = None,
        color: Optional[str] = None,
    ) -> str:
        """Return the ``charPr`` id for the requested run formatting."""
        if not (bold or italic or underline or font or size or color):
            return self._char_pr
        return self.document.styles.ensure_run(
            bold=bold,
            italic=italic,
            underline=underline,
            font=font,
            size=size,
            color=color,
            base_char_pr_id=self._char_pr,
        )

    def paragraph(self, text: str, *, page_break: bool = False, char_pr: Optional[str] = None):
        char_pr = char_pr or self._char_pr
        if self._template_paragraph_free and not page_break:
            self._template_paragraph_free = False
            paragraph = self.document.paragraphs[0]
            if text:
                paragraph.text = text
            if paragraph.char_pr_id_ref != char_pr:
                paragraph.char_pr_id_ref = char_pr
            return paragraph
        self._template_paragraph_free = False
        extra = {"pageBreak": "1"} if page_break else {}
        return self.document.add_paragraph(
            text,
            para_pr_id_ref=self._para_pr,
            char_pr_id_ref=char_pr,
            **extra,
        )

    def table(self, rows: int, cols: int):
        self._template_paragraph_free = False
        return self.document.add_table(rows=rows, cols=cols)

    def picture(
        self,
        data: bytes,
        image_format: str,
        *,
        width_mm: Optional[float] = None,
        height_mm: Optional[float] = None,
        align: Optional[str] = None,
    ):
        self._template_paragraph_free = False
        return self.document.add_picture(
            data,
            image_format,
            width_mm=width_mm,
            height_mm=height_mm,
            align=align,
            para_pr_id_ref=self._para_pr,
            char_pr_id_ref=self._char_pr,
        )

    def header(self, text: str) -> None:
        self.document.page.set_header(text=text)

    def footer(self, text: str) -> None:
        self.document.page.set_footer(text=text)

    def to_bytes(self) -> bytes:
        return self.document.to_bytes()


def heading_points(level: int) -> int:
    return HEADING_POINTS[min(level, len(HEADING_POINTS)) - 1]


def list_prefix(list_type: str, index: int) -> str:
    """Return the marker for item ``index`` (zero based) of a list."""
    number = index + 1
    if list_type == "bullet":
        return "•"
    if list_type == "alphabetic":
        letters = ""
        while number:
            number, remainder = divmod(number - 1, 26)
            letters = chr(ord("a") + remainder) + letters
        return f"{letters}."
    if list_type == "roman":
        value = number
        numeral = ""
        for amount, symbol in _ROMAN:
            while value >= amount:
                numeral += symbol
                value -= amount
        return f"{numeral}."
    if list_type == "korean":
        return f"{_HANGUL_ORDINALS[index % len(_HANGUL_ORDINALS)]}."
    return f"{number}."


def _paragraph_char_pr(writer: _Writer, style: TextStyle) -> str:
    return writer.char_style(
        bold=style.bold,
        italic=style.italic,
        underline=style.underline,
        font=style.font_name,
        size=style.font_size,
        color=style.color,
    )


def _write_table(writer: _Writer, op: TableOp, warnings: List[str]) -> None:
    if op.column_widths is not None:
        warnings.append("hwpx: column_widths is not supported; ignoring")
    if op.border_style not in (None, "basic"):
        warnings.append(f"hwpx: border_style '{op.border_style}' is not supported; using basic")

    table = writer.table(op.row_count, op.col_count)
    for cell in op.cells:
        table.rows[cell.row].cells[cell.col].text = cell.text
    for cell in op.cells:
        if cell.row_span > 1 or cell.col_span > 1:
            table.merge_cells(
                cell.row,
                cell.col,
                cell.row + cell.row_span - 1,
                cell.col + cell.col_span - 1,
            )
    if op.header_row and table.rows:
        bold = writer.char_style(bold=True)
        for cell in table.rows[0].cells:
            for paragraph in cell.paragraphs:
                paragraph.char_pr_id_ref = bold


def _write_image(writer: _Writer, op: ImageOp, warnings: List[str]) -> None:
    if op.wrap_text:
        warnings.append("hwpx: image wrap_text is not supported; placing the picture inline")
    writer.picture(
        op.data,
        _IMAGE_FORMATS[op.mime_type],
        width_mm=op.width_mm,
        height_mm=op.height_mm,
        align=op.align,
    )
    if op.caption:
        # extract_rich anchors the picture on this paragraph
        writer.paragraph(f"{CAPTION_PREFIX} {op.caption}")


def build_hwpx(instructions: DocumentInstructions) -> BuildOutcome:
    writer = _Writer()
    warnings: List[str] = []

    if instructions.header is not None:
        writer.header(instructions.header)
    if instructions.footer is not None:
        writer.footer(instructions.footer)
    if instructions.title:
        writer.paragraph(f"# {instructions.title}", char_pr=writer.char_style(bold=True, size=TITLE_POINTS))
    if instructions.author:
        writer.paragraph(f"Author: {instructions.author}", char_pr=writer.char_style(italic=True))

    for op in instructions.ops:
        if isinstance(op, ParagraphOp):
            char_pr = _paragraph_char_pr(writer, op.style) if op.style is not None else None
            writer.paragraph(op.text, char_pr=char_pr)
        elif isinstance(op, HeadingOp):
            char_pr = writer.char_style(bold=True, size=heading_points(op.level))
            writer.paragraph(f"{'#' * op.level} {op.text}", char_pr=char_pr)
        elif isinstance(op, TableOp):
            _write_table(writer, op, warnings)
        elif isinstance(op, ImageOp):
            _write_image(writer, op, warnings)
        elif isinstance(op, ListOp):
            for item_index, item in enumerate(op.items):
                writer.paragraph(f"{list_prefix(op.list_type, item_index)} {item}")
        elif isinstance(op, PageBreakOp):
            writer.paragraph("", page_break=True)
        else:
            raise TypeError(f"unknown block instruction: {type(op).__name__}")

    return BuildOutcome(data=writer.to_bytes(), warnings=warnings)


def build_plain(lines: Iterable[str]) -> bytes:
    """One paragraph per line; empty lines become empty paragraphs."""
    writer = _Writer()
    for line in lines:
        writer.paragraph(line)
    return writer.to_bytes()


def rebuild_from_handle(handle: DocumentHandle) -> BuildOutcome:
    """Re-serialize a parsed document as HWPX, keeping paragraph text, tables and pictures."""
    writer = _Writer()
    warnings: List[str] = []
    for section_index, section in enumerate(handle.sections):
        for paragraph_index, paragraph in enumerate(section.paragraphs):
            starts_page = paragraph.page_break or (section_index > 0 and paragraph_index == 0)
            writer.paragraph(paragraph.text, page_break=starts_page)
            for table in paragraph.tables:
                _copy_table(writer, table.rows, table.spans)

    # source positions are not tracked, so pictures follow the body text
    for image in handle.images:
        extension = image.extension.lower()
        if extension not in _EMBEDDABLE_EXTENSIONS:
            warnings.append(f"image bin_id={image.bin_id} ({extension or 'unknown'}) was not carried over")
            continue
        writer.picture(image.data, extension)
    return BuildOutcome(data=writer.to_bytes(), warnings=warnings)


def _copy_table(writer: _Writer, rows: Sequence[Sequence[str]], spans) -> None:
    row_count = len(rows)
    col_count = max((len(row) for row in rows), default=0)
    if row_count == 0 or col_count == 0:
        return
    table = writer.table(row_count, col_count)
    for row_index, row in enumerate(rows):
        for col_index, text in enumerate(row):
            table.rows[row_index].cells[col_index].text = text
    for span in spans:
        table.merge_cells(span.row, span.col, span.row + span.row_span - 1, span.col + span.col_span - 1)
