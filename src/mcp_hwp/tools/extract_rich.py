"""extract_rich: ordered paragraph, heading, table and image blocks.

Images are matched to their position through caption paragraphs
(``그림: ...``): a caption anchors the next embedded image, and an empty
paragraph directly before a caption is treated as the picture's own slot.
Images left over after the walk are reported with ``placement: unanchored``.
"""

from __future__ import annotations

import os
import re
import time
from typing import Any, Dict, List, Optional

from ..config import ServerSettings
from ..contracts import ExtractRichArgs
from ..core.outputs import InlineBudget, OutputArtifact, inline, write_resource
from ..core.results import ToolOutcome
from ..engine.model import EmbeddedImage, Paragraph, TableData
from .common import open_document

CAPTION_PREFIX = "그림:"
_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")


def _caption_of(text: str) -> Optional[str]:
    stripped = text.strip()
    if not stripped.startswith(CAPTION_PREFIX):
        return None
    return stripped[len(CAPTION_PREFIX):].strip()


def _table_block(section_index: int, paragraph_index: int, table: TableData) -> Dict[str, Any]:
    return {
        "type": "table",
        "section_index": section_index,
        "paragraph_index": paragraph_index,
        "rows": table.rows,
        "spans": [
            {"row": span.row, "col": span.col, "row_span": span.row_span, "col_span": span.col_span}
            for span in table.spans
        ],
        "inferred": False,
        "cells_count": table.cells_count,
    }


def _text_block(section_index: int, paragraph_index: int, text: str) -> Dict[str, Any]:
    match = _HEADING.match(text.strip())
    if match:
        return {
            "type": "heading",
            "section_index": section_index,
            "paragraph_index": paragraph_index,
            "level": len(match.group(1)),
            "text": match.group(2).strip(),
        }
    return {"type": "paragraph", "section_index": section_index, "paragraph_index": paragraph_index, "text": text}


class _ImageEmitter:
    """Turns embedded images into blocks according to the requested ``images`` mode."""

    def __init__(self, args: ExtractRichArgs, settings: ServerSettings, source: str, warnings: List[str]) -> None:
        self.mode = args.images
        self.max_image_bytes = args.max_image_bytes
        self.output_path = args.output_path
        self.settings = settings
        self.source = source
        self.warnings = warnings
        self.budget = InlineBudget(settings.limits.max_output_bytes, "inline images")

    def block(
        self,
        image: EmbeddedImage,
        section_index: Optional[int],
        paragraph_index: Optional[int],
        caption: Optional[str],
    ) -> Dict[str, Any]:
        block: Dict[str, Any] = {"type": "image"}
        if section_index is not None:
            block["section_index"] = section_index
            block["paragraph_index"] = paragraph_index
        block.update(
            bin_id=image.bin_id,
            bytes_len=len(image.data),
            extension=image.extension,
            mimeType=image.mime_type,
        )
        if caption is not None:
            block["caption"] = caption
        if self.mode in ("none", "metadata"):
            return block

        if self.max_image_bytes and len(image.data) > self.max_image_bytes:
            self.warnings.append(
                f"image bin_id={image.bin_id} exceeds max_image_bytes "
                f"({len(image.data)} > {self.max_image_bytes}); returning metadata"
            )
            return block

        extension = image.extension or "bin"
        artifact = OutputArtifact(
            data=image.data,
            target_format=extension,
            file_name=f"image-{os.getpid()}-{int(time.time() * 1000)}-{image.bin_id}.{extension}",
            mime_type=image.mime_type or "application/octet-stream",
        )
        if self.mode == "inline":
            block["base64"] = inline(artifact, self.budget, source=self.source).text
        else:
            reference = write_resource(
                artifact,
                self.settings,
                directory=self.output_path,
                source=self.source,
            )
            block["path"] = reference.path
            block["uri"] = reference.uri
        return block


def _walk_section(
    section_index: int,
    paragraphs: List[Paragraph],
    images: List[EmbeddedImage],
    emitter: _ImageEmitter,
) -> List[Dict[str, Any]]:
    blocks: List[Dict[str, Any]] = []
    index = 0
    while index < len(paragraphs):
        paragraph = paragraphs[index]
        text = paragraph.text

        if paragraph.tables:
            if text.strip():
                blocks.append(_text_block(section_index, index, text))
            for table in paragraph.tables:
                blocks.append(_table_block(section_index, index, table))
            index += 1
            continue

        caption = _caption_of(text)
        if caption is not None and images:
            blocks.append(emitter.block(images.pop(0), section_index, index, caption))
            index += 1
            continue

        if not text.strip() and index + 1 < len(paragraphs) and images:
            next_caption = _caption_of(paragraphs[index + 1].text)
            if next_caption is not None:
                blocks.append(emitter.block(images.pop(0), section_index, index, next_caption))
                index += 2
                continue

        blocks.append(_text_block(section_index, index, text))
        index += 1
    return blocks


def run(args: ExtractRichArgs, settings: ServerSettings) -> ToolOutcome:
    resolved, handle = open_document(args, settings)
    warnings = list(handle.warnings)
    emitter = _ImageEmitter(args, settings, resolved.source, warnings)

    remaining = [] if args.images == "none" else list(handle.images)
    blocks: List[Dict[str, Any]] = []
    for section_index, section in enumerate(handle.sections):
        blocks.extend(_walk_section(section_index, section.paragraphs, remaining, emitter))

    for image in remaining:
        block = emitter.block(image, None, None, None)
        block["placement"] = "unanchored"
        blocks.append(block)

    return ToolOutcome(
        text=f"extracted {len(blocks)} blocks",
        structured={"format": handle.format, "blocks": blocks, "warnings": warnings},
    )
