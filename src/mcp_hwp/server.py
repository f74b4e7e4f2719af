"""mcp-hwp entry point: the stdio record loop and one-shot CLI commands."""

from __future__ import annotations

import argparse
import io
import json
import logging
import sys
from typing import Any, Callable, Dict, Optional, TextIO

from . import SERVER_NAME, __version__
from .config import ServerSettings
from .errors import classify
from .logging_conf import configure_logging
from .registry import ToolName, ToolRegistry
from .router import MethodRouter
from .transport import read_records, write_record

logger = logging.getLogger(__name__)


def serve(
    stdin: TextIO,
    stdout: TextIO,
    *,
    settings: ServerSettings | None = None,
    registry: ToolRegistry | None = None,
) -> None:
    """Answer records from ``stdin`` in order until the stream ends."""
    settings = settings or ServerSettings.from_env()
    router = MethodRouter(registry or ToolRegistry(), settings)
    logger.info("server started", extra={"version": __version__, "max_parse_ms": settings.max_parse_ms})
    for record in read_records(stdin):
        write_record(stdout, router.handle_record(record))
    logger.info("server stopped")


def utf8_stdio() -> tuple[TextIO, TextIO]:
    """Wrap the process byte streams as UTF-8 text regardless of locale.

    Undecodable input bytes turn into U+FFFD, so a bad record fails JSON
    decoding on its own line instead of ending the loop.
    """
    stdin = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace", newline="\n")
    stdout = io.TextIOWrapper(
        sys.stdout.buffer, encoding="utf-8", errors="replace", newline="\n", write_through=True
    )
    return stdin, stdout


# ── CLI ───────────────────────────────────────────────

def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _input_arguments(ns: argparse.Namespace) -> Dict[str, Any]:
    return _compact({"path": ns.path, "base64": ns.base64, "format": ns.format})


def _add_input_options(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--path", help="Path of the .hwp/.hwpx file")
    source.add_argument("--base64", help="Document bytes as base64")
    parser.add_argument("--format", choices=("auto", "hwp", "hwpx"), default=None)


def _add_json_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Print structuredContent as JSON")


def _tool_command(
    subparsers,
    name: str,
    tool: ToolName,
    build: Callable[[argparse.Namespace], Dict[str, Any]],
    *,
    takes_input: bool = True,
    help_text: str,
) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=help_text)
    if takes_input:
        _add_input_options(parser)
    _add_json_option(parser)
    parser.set_defaults(tool=tool, build_arguments=build)
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=SERVER_NAME)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the MCP record loop")
    serve_parser.add_argument("--stdio", action="store_true", help="Serve over stdin/stdout")

    extract = _tool_command(
        subparsers,
        "extract-text",
        ToolName.EXTRACT_TEXT,
        lambda ns: {
            **_input_arguments(ns),
            **_compact({"max_chars": ns.max_chars}),
            "include_newlines": ns.include_newlines,
            "normalize_whitespace": ns.normalize_whitespace,
        },
        help_text="Extract plain text",
    )
    extract.add_argument("--max-chars", type=int, default=None)
    extract.add_argument("--no-newlines", dest="include_newlines", action="store_false")
    extract.add_argument("--normalize-whitespace", action="store_true")

    _tool_command(
        subparsers,
        "inspect-metadata",
        ToolName.INSPECT_METADATA,
        _input_arguments,
        help_text="Show format, counts and header flags",
    )

    summarize = _tool_command(
        subparsers,
        "summarize-structure",
        ToolName.SUMMARIZE_STRUCTURE,
        lambda ns: {
            **_input_arguments(ns),
            **_compact(
                {
                    "max_sections": ns.max_sections,
                    "max_paragraphs_per_section": ns.max_paragraphs_per_section,
                    "preview_chars": ns.preview_chars,
                }
            ),
        },
        help_text="Summarize sections and paragraphs",
    )
    summarize.add_argument("--max-sections", type=int, default=None)
    summarize.add_argument("--max-paragraphs-per-section", type=int, default=None)
    summarize.add_argument("--preview-chars", type=int, default=None)

    render = _tool_command(
        subparsers,
        "render-svg",
        ToolName.RENDER_SVG,
        lambda ns: {**_input_arguments(ns), **_compact({"pages": ns.pages, "output": ns.output})},
        help_text="Render pages as SVG",
    )
    render.add_argument("--page", dest="pages", type=int, action="append", default=None)
    render.add_argument("--output", choices=("inline", "resource"), default=None)

    convert = _tool_command(
        subparsers,
        "convert",
        ToolName.CONVERT,
        lambda ns: {**_input_arguments(ns), "to": ns.to, **_compact({"output_path": ns.output_path})},
        help_text="Convert to another format",
    )
    convert.add_argument("--to", choices=("hwp", "hwpx"), required=True)
    convert.add_argument("--output-path", default=None)

    create = _tool_command(
        subparsers,
        "create-document",
        ToolName.CREATE_DOCUMENT,
        lambda ns: {"text": ns.text, **_compact({"output_path": ns.output_path})},
        takes_input=False,
        help_text="Create an HWPX document from text",
    )
    create.add_argument("--text", required=True)
    create.add_argument("--output-path", default=None)

    rich = _tool_command(
        subparsers,
        "extract-rich",
        ToolName.EXTRACT_RICH,
        lambda ns: {
            **_input_arguments(ns),
            **_compact(
                {
                    "images": ns.images,
                    "max_image_bytes": ns.max_image_bytes,
                    "output_path": ns.output_path,
                }
            ),
        },
        help_text="Extract ordered content blocks",
    )
    rich.add_argument("--images", choices=("none", "metadata", "inline", "resource"), default=None)
    rich.add_argument("--max-image-bytes", type=int, default=None)
    rich.add_argument("--output-path", default=None)

    return parser


def run_command(ns: argparse.Namespace, settings: ServerSettings, *, out: TextIO, err: TextIO) -> int:
    spec = ToolRegistry().lookup(ns.tool.value)
    if spec is None:
        print(f"error: unknown tool {ns.tool.value}", file=err)
        return 1
    try:
        outcome = spec.invoke(ns.build_arguments(ns), settings)
    except Exception as exc:  # noqa: BLE001
        error = classify(exc)
        print(f"error: [{error.kind.value}] {error.message}", file=err)
        return 1

    if ns.json:
        print(json.dumps(outcome.structured, ensure_ascii=False, indent=2), file=out)
    else:
        print(outcome.text, file=out)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    configure_logging(ns.log_level)
    settings = ServerSettings.from_env()

    if ns.command == "serve":
        if not ns.stdio:
            print("error: only --stdio transport is supported", file=sys.stderr)
            return 2
        stdin, stdout = utf8_stdio()
        serve(stdin, stdout, settings=settings)
        return 0

    return run_command(ns, settings, out=sys.stdout, err=sys.stderr)


if __name__ == "__main__":
    raise SystemExit(main())
