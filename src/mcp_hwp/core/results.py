"""Tool result envelopes built from ``mcp.types`` models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, List

import mcp.types as mcp_types

from ..errors import ToolError
from .outputs import ResourceReference


@dataclass(slots=True)
class ToolOutcome:
    """What a handler produced: a human summary, the machine payload, optional resource links."""

    text: str
    structured: Dict[str, Any]
    links: List[mcp_types.ResourceLink] = field(default_factory=list)

    def add_warning(self, message: str) -> bool:
        warnings = self.structured.get("warnings")
        if not isinstance(warnings, list):
            return False
        warnings.append(message)
        return True


def resource_link(reference: ResourceReference, mime_type: str) -> mcp_types.ResourceLink:
    return mcp_types.ResourceLink(
        type="resource_link",
        name=PurePath(reference.path).name,
        uri=reference.uri,
        mimeType=mime_type,
    )


def _dump(result: mcp_types.CallToolResult) -> Dict[str, Any]:
    return result.model_dump(by_alias=True, exclude_none=True, mode="json")


def success_result(outcome: ToolOutcome) -> Dict[str, Any]:
    content: List[Any] = [mcp_types.TextContent(type="text", text=outcome.text)]
    content.extend(outcome.links)
    return _dump(
        mcp_types.CallToolResult(
            content=content,
            structuredContent=outcome.structured,
            isError=False,
        )
    )


def error_result(error: ToolError) -> Dict[str, Any]:
    return _dump(
        mcp_types.CallToolResult(
            content=[mcp_types.TextContent(type="text", text=f"Error: {error.message}")],
            structuredContent={"error": error.to_payload()},
            isError=True,
        )
    )
