"""inspect_metadata: format, counts and header flags."""

from __future__ import annotations

from ..config import ServerSettings
from ..contracts import InspectMetadataArgs
from ..core.results import ToolOutcome
from .common import open_document


def run(args: InspectMetadataArgs, settings: ServerSettings) -> ToolOutcome:
    _, handle = open_document(args, settings)
    sections = len(handle.sections)
    paragraphs = handle.paragraph_count
    structured = {
        "format": handle.format,
        "sections": sections,
        "paragraphs": paragraphs,
        "warnings": list(handle.warnings),
        "encrypted": handle.encrypted,
        "compressed": handle.compressed,
        "version": handle.version,
    }
    return ToolOutcome(text=f"sections: {sections}, paragraphs: {paragraphs}", structured=structured)
