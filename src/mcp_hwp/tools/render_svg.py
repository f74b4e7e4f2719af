"""render_svg: lay pages out as SVG, inline or as resource files."""

from __future__ import annotations

import os
import secrets
from typing import Any, Dict, List

from ..config import ServerSettings
from ..contracts import RenderSvgArgs
from ..core.outputs import InlineBudget, OutputArtifact, OutputMode, inline, write_resource
from ..core.results import ToolOutcome, resource_link
from ..engine import api as engine
from ..engine.errors import EngineError
from ..errors import classify
from .common import open_document

SVG_MIME_TYPE = "image/svg+xml"


def run(args: RenderSvgArgs, settings: ServerSettings) -> ToolOutcome:
    resolved, handle = open_document(args, settings)
    try:
        rendered = engine.render(handle, args.selected_pages())
    except EngineError as exc:
        raise classify(exc, source=resolved.source) from exc

    token = f"{os.getpid()}-{secrets.token_hex(4)}"
    artifacts = [
        OutputArtifact(
            data=page.svg.encode("utf-8"),
            target_format="svg",
            file_name=f"hwp-render-{token}-page-{page.page}.svg",
            mime_type=SVG_MIME_TYPE,
        )
        for page in rendered
    ]

    pages_out: List[Dict[str, Any]] = []
    outcome = ToolOutcome(text="", structured={})
    if args.output is OutputMode.INLINE:
        budget = InlineBudget.for_svg(settings.limits)
        for page, artifact in zip(rendered, artifacts):
            payload = inline(artifact, budget, source=resolved.source)
            pages_out.append({"page": page.page, "svg": payload.text})
        outcome.text = f"rendered {len(pages_out)} page(s) as svg"
    else:
        for page, artifact in zip(rendered, artifacts):
            reference = write_resource(artifact, settings, source=resolved.source)
            pages_out.append({"page": page.page, "path": reference.path, "uri": reference.uri})
            outcome.links.append(resource_link(reference, SVG_MIME_TYPE))
        outcome.text = f"rendered {len(pages_out)} page(s) as svg resources"

    outcome.structured = {"format": handle.format, "pages": pages_out, "warnings": list(handle.warnings)}
    return outcome
