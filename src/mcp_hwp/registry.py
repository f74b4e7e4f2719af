"""The fixed tool catalog."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Type

import mcp.types as mcp_types

from .config import ServerSettings
from .contracts import (
    ArgsModel,
    ConvertArgs,
    CreateDocumentArgs,
    CreateRichDocumentArgs,
    ExtractRichArgs,
    ExtractTextArgs,
    InspectMetadataArgs,
    RenderSvgArgs,
    SummarizeStructureArgs,
    input_schema,
)
from .core.results import ToolOutcome
from .tools import (
    convert,
    create_document,
    create_rich_document,
    extract_rich,
    extract_text,
    inspect_metadata,
    render_svg,
    summarize_structure,
)

Handler = Callable[[Any, ServerSettings], ToolOutcome]


class ToolName(str, Enum):
    EXTRACT_TEXT = "extract_text"
    INSPECT_METADATA = "inspect_metadata"
    SUMMARIZE_STRUCTURE = "summarize_structure"
    RENDER_SVG = "render_svg"
    CONVERT = "convert"
    CREATE_DOCUMENT = "create_document"
    CREATE_RICH_DOCUMENT = "create_rich_document"
    EXTRACT_RICH = "extract_rich"


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    args_model: Type[ArgsModel]
    handler: Handler

    def to_tool(self) -> mcp_types.Tool:
        return mcp_types.Tool(
            name=self.name.value,
            description=self.description,
            inputSchema=input_schema(self.args_model),
        )

    def invoke(self, arguments: Dict[str, Any], settings: ServerSettings) -> ToolOutcome:
        """Validate ``arguments`` against the tool's model and run the handler."""
        args = self.args_model.model_validate(arguments)
        return self.handler(args, settings)


_SPECS = (
    ToolSpec(
        ToolName.EXTRACT_TEXT,
        "Extract plain text from an HWP/HWPX document.",
        ExtractTextArgs,
        extract_text.run,
    ),
    ToolSpec(
        ToolName.INSPECT_METADATA,
        "Report format, section and paragraph counts, and header flags of an HWP/HWPX document.",
        InspectMetadataArgs,
        inspect_metadata.run,
    ),
    ToolSpec(
        ToolName.SUMMARIZE_STRUCTURE,
        "Summarize sections and paragraphs with short text previews.",
        SummarizeStructureArgs,
        summarize_structure.run,
    ),
    ToolSpec(
        ToolName.RENDER_SVG,
        "Render document pages as SVG, inline or as resource files.",
        RenderSvgArgs,
        render_svg.run,
    ),
    ToolSpec(
        ToolName.CONVERT,
        "Convert an HWP/HWPX document to another format.",
        ConvertArgs,
        convert.run,
    ),
    ToolSpec(
        ToolName.CREATE_DOCUMENT,
        "Create an HWPX document from plain text, one paragraph per line.",
        CreateDocumentArgs,
        create_document.run,
    ),
    ToolSpec(
        ToolName.CREATE_RICH_DOCUMENT,
        "Create a document from headings, paragraphs, tables, lists, images and page breaks.",
        CreateRichDocumentArgs,
        create_rich_document.run,
    ),
    ToolSpec(
        ToolName.EXTRACT_RICH,
        "Extract ordered paragraph, heading, table and image blocks.",
        ExtractRichArgs,
        extract_rich.run,
    ),
)


class ToolRegistry:
    """Read-only mapping of tool names to specs, built once per process."""

    def __init__(self, specs: tuple[ToolSpec, ...] = _SPECS) -> None:
        missing = set(ToolName) - {spec.name for spec in specs}
        if missing:
            raise ValueError(f"tool registry is missing handlers for {sorted(name.value for name in missing)}")
        self._specs: Mapping[ToolName, ToolSpec] = MappingProxyType({spec.name: spec for spec in specs})
        self._tools = tuple(spec.to_tool() for spec in specs)

    def lookup(self, name: str) -> Optional[ToolSpec]:
        try:
            return self._specs[ToolName(name)]
        except ValueError:
            return None

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.model_dump(by_alias=True, exclude_none=True, mode="json") for tool in self._tools]

    def __len__(self) -> int:
        return len(self._specs)
