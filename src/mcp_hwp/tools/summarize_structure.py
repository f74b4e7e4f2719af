"""summarize_structure: per-section paragraph previews."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..config import ServerSettings
from ..contracts import SummarizeStructureArgs
from ..core.results import ToolOutcome
from .common import open_document


def _limited(items: List[Any], limit: Optional[int]) -> List[Any]:
    return items if limit is None else items[:limit]


def run(args: SummarizeStructureArgs, settings: ServerSettings) -> ToolOutcome:
    _, handle = open_document(args, settings)

    sections_out: List[Dict[str, Any]] = []
    for section_index, section in enumerate(_limited(handle.sections, args.max_sections)):
        paragraphs_out = [
            {
                "index": paragraph_index,
                "char_count": len(paragraph.text),
                "preview": paragraph.text[: args.preview_chars],
            }
            for paragraph_index, paragraph in enumerate(
                _limited(section.paragraphs, args.max_paragraphs_per_section)
            )
        ]
        sections_out.append({"index": section_index, "paragraphs": paragraphs_out})

    listed_paragraphs = sum(len(section["paragraphs"]) for section in sections_out)
    summary = (
        f"sections: {len(sections_out)}, paragraphs: {listed_paragraphs} "
        f"(preview_chars={args.preview_chars})"
    )
    structured = {"format": handle.format, "sections": sections_out, "warnings": list(handle.warnings)}
    return ToolOutcome(text=summary, structured=structured)
