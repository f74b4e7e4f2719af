"""create_rich_document: compile declarative blocks and build a document."""

from __future__ import annotations

from ..config import ServerSettings
from ..contracts import CreateRichDocumentArgs
from ..core.blocks import BlockCompiler
from ..core.outputs import OutputArtifact, OutputMode, resolve_output
from ..core.results import ToolOutcome, resource_link
from ..engine import api as engine
from ..engine.errors import EngineError
from ..errors import classify

DOCUMENT_MIME_TYPE = "application/octet-stream"


def run(args: CreateRichDocumentArgs, settings: ServerSettings) -> ToolOutcome:
    compiler = BlockCompiler(
        max_image_bytes=settings.limits.max_input_bytes,
        sandbox_root=settings.sandbox_root,
    )
    instructions = compiler.compile(args.document)
    try:
        built = engine.build(instructions, args.to)
    except EngineError as exc:
        raise classify(exc) from exc

    bytes_len = len(built.data)
    artifact = OutputArtifact(
        data=built.data,
        target_format=args.to,
        file_name=f"document.{args.to}",
        mime_type=DOCUMENT_MIME_TYPE,
    )
    if args.output_path is None:
        payload = resolve_output(artifact, OutputMode.INLINE, settings)
        return ToolOutcome(
            text=f"created {args.to} document ({bytes_len} bytes)",
            structured={"to": args.to, "base64": payload.text, "bytes_len": bytes_len, "warnings": built.warnings},
        )

    reference = resolve_output(artifact, OutputMode.RESOURCE, settings, output_path=args.output_path)
    return ToolOutcome(
        text=f"{args.to} document written to {reference.path}",
        structured={
            "to": args.to,
            "path": reference.path,
            "uri": reference.uri,
            "bytes_len": bytes_len,
            "warnings": built.warnings,
        },
        links=[resource_link(reference, DOCUMENT_MIME_TYPE)],
    )
