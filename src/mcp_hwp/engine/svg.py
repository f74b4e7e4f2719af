"""Plain text page layout rendered to SVG with lxml."""

from __future__ import annotations

import unicodedata
from typing import Iterable, List, Sequence

from lxml import etree

from .errors import EngineInputError
from .model import DocumentHandle, SvgPage

SVG_NS = "http://www.w3.org/2000/svg"

# A4 at 96 dpi
PAGE_WIDTH = 794
PAGE_HEIGHT = 1123
MARGIN = 72
FONT_SIZE = 14
LINE_HEIGHT = 20
LINE_BUDGET = 88
LINES_PER_PAGE = (PAGE_HEIGHT - 2 * MARGIN) // LINE_HEIGHT


def _char_width(char: str) -> int:
    return 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1


def wrap_line(text: str, budget: int = LINE_BUDGET) -> List[str]:
    """Wrap ``text`` so every line fits ``budget`` half-width cells."""
    if not text:
        return [""]
    lines: List[str] = []
    current: List[str] = []
    used = 0
    for char in text:
        width = _char_width(char)
        if current and used + width > budget:
            lines.append("".join(current))
            current, used = [], 0
        current.append(char)
        used += width
    lines.append("".join(current))
    return lines


def _paragraph_lines(text: str) -> Iterable[str]:
    for raw_line in text.replace("\r\n", "\n").split("\n"):
        printable = "".join(char for char in raw_line.replace("\t", "    ") if char >= " ")
        yield from wrap_line(printable)


def layout_pages(handle: DocumentHandle) -> List[List[str]]:
    """Split the document into pages of text lines."""
    pages: List[List[str]] = [[]]
    for section_index, section in enumerate(handle.sections):
        for paragraph_index, paragraph in enumerate(section.paragraphs):
            new_section = section_index > 0 and paragraph_index == 0
            if (paragraph.page_break or new_section) and pages[-1]:
                pages.append([])
            lines = list(_paragraph_lines(paragraph.text))
            for table in paragraph.tables:
                for row in table.rows:
                    lines.extend(_paragraph_lines(" | ".join(row)))
            if paragraph.page_break and not paragraph.text and not paragraph.tables:
                continue
            for line in lines:
                if len(pages[-1]) >= LINES_PER_PAGE:
                    pages.append([])
                pages[-1].append(line)
    return pages


def _render_page(lines: Sequence[str]) -> str:
    root = etree.Element(
        f"{{{SVG_NS}}}svg",
        nsmap={None: SVG_NS},
        width=str(PAGE_WIDTH),
        height=str(PAGE_HEIGHT),
        viewBox=f"0 0 {PAGE_WIDTH} {PAGE_HEIGHT}",
    )
    etree.SubElement(root, f"{{{SVG_NS}}}rect", width="100%", height="100%", fill="#ffffff")
    group = etree.SubElement(
        root,
        f"{{{SVG_NS}}}g",
        fill="#000000",
        attrib={"font-family": "sans-serif", "font-size": str(FONT_SIZE)},
    )
    for index, line in enumerate(lines):
        if not line:
            continue
        text = etree.SubElement(
            group,
            f"{{{SVG_NS}}}text",
            x=str(MARGIN),
            y=str(MARGIN + (index + 1) * LINE_HEIGHT),
        )
        text.set("{http://www.w3.org/XML/1998/namespace}space", "preserve")
        text.text = line
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8").decode("utf-8")


def render_pages(handle: DocumentHandle, pages: Sequence[int]) -> List[SvgPage]:
    laid_out = layout_pages(handle)
    rendered: List[SvgPage] = []
    for page in pages:
        if page < 1 or page > len(laid_out):
            raise EngineInputError(f"page out of range: {page}")
        rendered.append(SvgPage(page=page, svg=_render_page(laid_out[page - 1])))
    return rendered
