"""create_document: one HWPX paragraph per line of text."""

from __future__ import annotations

from ..config import ServerSettings
from ..contracts import CreateDocumentArgs
from ..core.outputs import OutputArtifact, OutputMode, resolve_output
from ..core.results import ToolOutcome, resource_link
from ..engine import api as engine
from ..engine.errors import EngineError
from ..errors import classify

DOCUMENT_MIME_TYPE = "application/octet-stream"


def split_paragraphs(text: str) -> list[str]:
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def run(args: CreateDocumentArgs, settings: ServerSettings) -> ToolOutcome:
    try:
        data = engine.build_plain(split_paragraphs(args.text))
    except EngineError as exc:
        raise classify(exc) from exc

    artifact = OutputArtifact(data=data, target_format="hwpx", file_name="document.hwpx", mime_type=DOCUMENT_MIME_TYPE)
    if args.output_path is None:
        payload = resolve_output(artifact, OutputMode.INLINE, settings)
        return ToolOutcome(
            text=f"created document ({len(data)} bytes)",
            structured={"base64": payload.text, "bytes_len": len(data)},
        )

    reference = resolve_output(artifact, OutputMode.RESOURCE, settings, output_path=args.output_path)
    return ToolOutcome(
        text=f"document written to {reference.path}",
        structured={"path": reference.path, "uri": reference.uri, "bytes_len": len(data)},
        links=[resource_link(reference, DOCUMENT_MIME_TYPE)],
    )
