"""HWP/HWPX document tools served over a line-delimited MCP stdio protocol."""

from importlib.metadata import version, PackageNotFoundError

try:  # pragma: no cover - metadata lookup is cached by packaging
    __version__ = version("mcp-hwp")
except PackageNotFoundError:  # pragma: no cover - fallback for local development
    __version__ = "0.0.0"

SERVER_NAME = "mcp-hwp"

__all__ = ["SERVER_NAME", "__version__"]
