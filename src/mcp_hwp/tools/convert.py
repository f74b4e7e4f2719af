"""convert: re-serialize a document in another format."""

from __future__ import annotations

from ..config import ServerSettings
from ..contracts import ConvertArgs
from ..core.outputs import OutputArtifact, OutputMode, resolve_output
from ..core.results import ToolOutcome, resource_link
from ..engine import api as engine
from ..engine.errors import EngineError
from ..errors import classify
from .common import open_document

HWPX_MIME_TYPE = "application/octet-stream"


def run(args: ConvertArgs, settings: ServerSettings) -> ToolOutcome:
    resolved, handle = open_document(args, settings)
    try:
        built = engine.convert(handle, args.to)
    except EngineError as exc:
        raise classify(exc, source=resolved.source) from exc

    warnings = list(handle.warnings) + built.warnings
    artifact = OutputArtifact(
        data=built.data,
        target_format=args.to,
        file_name=f"converted.{args.to}",
        mime_type=HWPX_MIME_TYPE,
    )
    bytes_len = len(built.data)

    if args.output_path is None:
        payload = resolve_output(artifact, OutputMode.INLINE, settings, source=resolved.source)
        return ToolOutcome(
            text=f"converted to {args.to} ({bytes_len} bytes)",
            structured={"to": args.to, "base64": payload.text, "bytes_len": bytes_len, "warnings": warnings},
        )

    reference = resolve_output(
        artifact,
        OutputMode.RESOURCE,
        settings,
        output_path=args.output_path,
        source=resolved.source,
    )
    return ToolOutcome(
        text=f"converted to {args.to} ({bytes_len} bytes) at {reference.path}",
        structured={
            "to": args.to,
            "path": reference.path,
            "uri": reference.uri,
            "bytes_len": bytes_len,
            "warnings": warnings,
        },
        links=[resource_link(reference, HWPX_MIME_TYPE)],
    )
