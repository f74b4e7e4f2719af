"""Process-wide, read-only server configuration."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from .utils.helpers import env_int, env_path

MAX_INPUT_BYTES = 50 * 1024 * 1024
MAX_OUTPUT_BYTES = 20 * 1024 * 1024
MAX_SVG_OUTPUT_BYTES = 50 * 1024 * 1024
MAX_PARSE_MS = 10_000


@dataclass(frozen=True)
class SizeLimits:
    max_input_bytes: int = MAX_INPUT_BYTES
    max_output_bytes: int = MAX_OUTPUT_BYTES
    max_svg_output_bytes: int = MAX_SVG_OUTPUT_BYTES


def _default_resource_dir() -> Path:
    return Path(tempfile.gettempdir()) / "mcp-hwp"


@dataclass(frozen=True)
class ServerSettings:
    """Immutable settings shared by the router and every tool handler."""

    limits: SizeLimits = field(default_factory=SizeLimits)
    max_parse_ms: int = MAX_PARSE_MS
    resource_dir: Path = field(default_factory=_default_resource_dir)
    sandbox_root: Path | None = None

    @classmethod
    def from_env(cls) -> "ServerSettings":
        limits = SizeLimits(
            max_input_bytes=env_int("MCP_HWP_MAX_INPUT_BYTES", MAX_INPUT_BYTES),
            max_output_bytes=env_int("MCP_HWP_MAX_OUTPUT_BYTES", MAX_OUTPUT_BYTES),
            max_svg_output_bytes=env_int("MCP_HWP_MAX_SVG_OUTPUT_BYTES", MAX_SVG_OUTPUT_BYTES),
        )
        return cls(
            limits=limits,
            max_parse_ms=env_int("MCP_HWP_MAX_PARSE_MS", MAX_PARSE_MS),
            resource_dir=env_path("MCP_HWP_RESOURCE_DIR") or _default_resource_dir(),
            sandbox_root=env_path("MCP_HWP_SANDBOX_ROOT"),
        )
