"""Declarative document blocks and their compilation into builder instructions.

Blocks are validated structurally by pydantic and semantically here, in one
pass that keeps input order. Every failure is reported against the index of
the offending block (``document.blocks[3]: ...``) before anything reaches the
document builder.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..engine.model import (
    BlockOp,
    DocumentInstructions,
    HeadingOp,
    ImageOp,
    ListOp,
    PageBreakOp,
    ParagraphOp,
    PlacedCell,
    TableOp,
    TextStyle,
)
from ..errors import ErrorKind, ToolError
from .inputs import decode_base64, read_file

HEADING_LEVELS = range(1, 7)
IMAGE_MIME_TYPES = ("image/png", "image/jpeg", "image/gif", "image/bmp")
_RGB_PATTERN = re.compile(r"(?:#|0[xX])?([0-9A-Fa-f]{6})")


class SpecModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class ParagraphStyle(SpecModel):
    bold: bool = False
    italic: bool = False
    underline: bool = False
    font_name: Optional[str] = None
    font_size: Optional[float] = Field(default=None, gt=0)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def _rgb(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        match = _RGB_PATTERN.fullmatch(value.strip())
        if match is None:
            raise ValueError("color must be #RRGGBB or 0xRRGGBB")
        return f"#{match.group(1).upper()}"


class ParagraphBlock(SpecModel):
    type: Literal["paragraph"]
    text: str
    style: Optional[ParagraphStyle] = None


class HeadingBlock(SpecModel):
    type: Literal["heading"]
    level: int
    text: str


class TableCellSpec(SpecModel):
    content: str = ""
    row_span: int = Field(default=1, ge=1)
    col_span: int = Field(default=1, ge=1)


TableCell = Union[str, TableCellSpec]


class TableBlock(SpecModel):
    type: Literal["table"]
    rows: List[List[TableCell]]
    header_row: bool = False
    column_widths: Optional[List[Annotated[float, Field(gt=0)]]] = None
    border_style: Optional[Literal["none", "basic", "full"]] = None


class ImageBlock(SpecModel):
    type: Literal["image"]
    path: Optional[str] = None
    data_base64: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    width_mm: Optional[float] = Field(default=None, gt=0)
    height_mm: Optional[float] = Field(default=None, gt=0)
    caption: Optional[str] = None
    align: Optional[Literal["left", "center", "right"]] = None
    wrap_text: Optional[bool] = None


ListType = Literal["bullet", "numbered", "alphabetic", "roman", "korean"]


class ListBlock(SpecModel):
    type: Literal["list"]
    items: List[str]
    list_type: Optional[ListType] = None
    ordered: Optional[bool] = None


class PageBreakBlock(SpecModel):
    type: Literal["page_break"]


BlockSpec = Annotated[
    Union[ParagraphBlock, HeadingBlock, TableBlock, ImageBlock, ListBlock, PageBreakBlock],
    Field(discriminator="type"),
]


class DocumentSpec(SpecModel):
    title: Optional[str] = None
    author: Optional[str] = None
    header: Optional[str] = None
    footer: Optional[str] = None
    blocks: List[BlockSpec]


# ── compilation ───────────────────────────────────────

def sniff_image_mime(data: bytes) -> Optional[str]:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data.startswith(b"BM"):
        return "image/bmp"
    return None


def place_cells(rows: List[List[TableCell]]) -> Tuple[int, int, Tuple[PlacedCell, ...]]:
    """Lay declared cells on a grid the way HTML tables do.

    Each row lists only the cells anchored in it; a cell takes the next column
    not already covered by a span from an earlier row.
    """
    if not rows:
        raise ToolError.invalid_input("table requires at least one row")

    row_count = len(rows)
    occupied: Dict[Tuple[int, int], Tuple[int, int]] = {}
    placed: List[PlacedCell] = []

    for row_index, row in enumerate(rows):
        col_index = 0
        for cell in row:
            while (row_index, col_index) in occupied:
                col_index += 1
            if isinstance(cell, str):
                text, row_span, col_span = cell, 1, 1
            else:
                text, row_span, col_span = cell.content, cell.row_span, cell.col_span
            if row_index + row_span > row_count:
                raise ToolError.invalid_input(
                    f"cell ({row_index}, {col_index}) row_span {row_span} runs past the last row"
                )
            for r in range(row_index, row_index + row_span):
                for c in range(col_index, col_index + col_span):
                    owner = occupied.get((r, c))
                    if owner is not None:
                        raise ToolError.invalid_input(
                            f"cell ({row_index}, {col_index}) overlaps cell {owner} at ({r}, {c})"
                        )
                    occupied[(r, c)] = (row_index, col_index)
            placed.append(PlacedCell(row_index, col_index, row_span, col_span, text))
            col_index += col_span

    col_count = max((c + 1 for _, c in occupied), default=0)
    if col_count == 0:
        raise ToolError.invalid_input("table requires at least one cell")
    for r in range(row_count):
        for c in range(col_count):
            if (r, c) not in occupied:
                raise ToolError.invalid_input(f"table row {r} has no cell at column {c}")
    return row_count, col_count, tuple(placed)


class BlockCompiler:
    """Compiles a :class:`DocumentSpec` with the image limits of one request."""

    def __init__(self, *, max_image_bytes: int, sandbox_root: Path | None = None) -> None:
        self.max_image_bytes = max_image_bytes
        self.sandbox_root = sandbox_root

    def compile(self, spec: DocumentSpec) -> DocumentInstructions:
        ops: List[BlockOp] = []
        for index, block in enumerate(spec.blocks):
            try:
                ops.append(self._compile_block(block))
            except ToolError as exc:
                raise ToolError(exc.kind, f"document.blocks[{index}]: {exc.message}", source=exc.source) from exc
        return DocumentInstructions(
            ops=tuple(ops),
            title=spec.title,
            author=spec.author,
            header=spec.header,
            footer=spec.footer,
        )

    def _compile_block(self, block) -> BlockOp:
        if isinstance(block, ParagraphBlock):
            style = TextStyle(**block.style.model_dump()) if block.style is not None else None
            return ParagraphOp(text=block.text, style=style)
        if isinstance(block, HeadingBlock):
            if block.level not in HEADING_LEVELS:
                raise ToolError.invalid_input(f"heading level must be between 1 and 6, got {block.level}")
            return HeadingOp(level=block.level, text=block.text)
        if isinstance(block, TableBlock):
            return self._compile_table(block)
        if isinstance(block, ImageBlock):
            return self._compile_image(block)
        if isinstance(block, ListBlock):
            if not block.items:
                raise ToolError.invalid_input("list requires at least one item")
            list_type = block.list_type or ("numbered" if block.ordered else "bullet")
            return ListOp(items=tuple(block.items), list_type=list_type)
        if isinstance(block, PageBreakBlock):
            return PageBreakOp()
        raise ToolError.internal(f"unhandled block type: {type(block).__name__}")

    def _compile_table(self, block: TableBlock) -> TableOp:
        row_count, col_count, cells = place_cells(block.rows)
        widths = None
        if block.column_widths is not None:
            if len(block.column_widths) != col_count:
                raise ToolError.invalid_input(
                    f"column_widths has {len(block.column_widths)} entries for {col_count} columns"
                )
            widths = tuple(block.column_widths)
        return TableOp(
            row_count=row_count,
            col_count=col_count,
            cells=cells,
            header_row=block.header_row,
            column_widths=widths,
            border_style=block.border_style,
        )

    def _compile_image(self, block: ImageBlock) -> ImageOp:
        both_sent = {"path", "data_base64"} <= block.model_fields_set
        if both_sent or (block.path is None) == (block.data_base64 is None):
            raise ToolError.invalid_input("image requires exactly one of 'path' or 'data_base64'")

        if block.data_base64 is not None:
            if block.mime_type is None:
                raise ToolError.invalid_input("mimeType is required with data_base64")
            if block.mime_type not in IMAGE_MIME_TYPES:
                raise ToolError(ErrorKind.UNSUPPORTED_FORMAT, f"unsupported image mimeType: {block.mime_type}")
            data = decode_base64(block.data_base64, max_bytes=self.max_image_bytes, source="base64", label="image")
        else:
            source = f"path:{block.path}"
            data = read_file(
                block.path,
                max_bytes=self.max_image_bytes,
                source=source,
                sandbox_root=self.sandbox_root,
                label="image",
            )

        sniffed = sniff_image_mime(data)
        if sniffed is None:
            raise ToolError(ErrorKind.UNSUPPORTED_FORMAT, "unrecognized image bytes")
        if block.mime_type is not None and block.mime_type != sniffed:
            raise ToolError.invalid_input(f"image bytes are {sniffed}, not {block.mime_type}")

        return ImageOp(
            data=data,
            mime_type=sniffed,
            width_mm=block.width_mm,
            height_mm=block.height_mm,
            caption=block.caption,
            align=block.align,
            wrap_text=block.wrap_text,
        )
