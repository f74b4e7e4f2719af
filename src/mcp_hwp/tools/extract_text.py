"""extract_text: plain text of every paragraph, then table cell text."""

from __future__ import annotations

from ..config import ServerSettings
from ..contracts import ExtractTextArgs
from ..core.results import ToolOutcome
from ..utils.helpers import truncate_chars
from .common import open_document


def normalize_text(text: str, *, include_newlines: bool, normalize_whitespace: bool) -> str:
    output = text.replace("\r\n", "\n").replace("\r", "\n")
    if not include_newlines:
        output = output.replace("\n", " ")
    if normalize_whitespace:
        if include_newlines:
            output = "\n".join(" ".join(line.split()) for line in output.split("\n"))
        else:
            output = " ".join(output.split())
    return output


def run(args: ExtractTextArgs, settings: ServerSettings) -> ToolOutcome:
    _, handle = open_document(args, settings)
    text = normalize_text(
        handle.full_text(),
        include_newlines=args.include_newlines,
        normalize_whitespace=args.normalize_whitespace,
    )
    text = truncate_chars(text, args.max_chars)
    return ToolOutcome(text=text, structured={"text": text})
