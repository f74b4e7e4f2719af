from __future__ import annotations

import base64
import io
import itertools
import json
import logging
import os
import sys
import zipfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

import pytest

from mcp_hwp.config import ServerSettings, SizeLimits
from mcp_hwp.engine import api as engine
from mcp_hwp.engine.model import (
    DocumentInstructions,
    HeadingOp,
    ImageOp,
    ListOp,
    PageBreakOp,
    ParagraphOp,
    PlacedCell,
    TableOp,
)
from mcp_hwp.registry import ToolRegistry
from mcp_hwp.server import serve

# a complete 1x1 transparent PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-\xb4\x00\x00\x00\x00IEND\xaeB`\x82"
)


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep inherited MCP_HWP_* variables and CLI logging setup out of in-process tests."""

    for name in list(os.environ):
        if name.startswith("MCP_HWP_"):
            monkeypatch.delenv(name, raising=False)

    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    package_level = logging.getLogger("mcp_hwp").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("mcp_hwp").setLevel(package_level)


@pytest.fixture()
def settings(tmp_path: Path) -> ServerSettings:
    return ServerSettings(resource_dir=tmp_path / "resources")


@pytest.fixture()
def small_settings(settings: ServerSettings) -> ServerSettings:
    return replace(
        settings,
        limits=SizeLimits(max_input_bytes=64, max_output_bytes=64, max_svg_output_bytes=64),
    )


@pytest.fixture(scope="session")
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture(scope="session")
def plain_hwpx() -> bytes:
    return engine.build_plain(["a", "", "b"])


@pytest.fixture(scope="session")
def rich_instructions() -> DocumentInstructions:
    return DocumentInstructions(
        title="Quarterly report",
        author="Kim",
        ops=(
            HeadingOp(level=2, text="Overview"),
            ParagraphOp(text="Revenue grew in every region."),
            TableOp(
                row_count=2,
                col_count=2,
                cells=(
                    PlacedCell(0, 0, 1, 1, "Region"),
                    PlacedCell(0, 1, 1, 1, "Growth"),
                    PlacedCell(1, 0, 1, 1, "Seoul"),
                    PlacedCell(1, 1, 1, 1, "12%"),
                ),
                header_row=True,
            ),
            ListOp(items=("first", "second"), list_type="numbered"),
            ImageOp(data=PNG_BYTES, mime_type="image/png", caption="logo"),
            PageBreakOp(),
            ParagraphOp(text="Appendix"),
        ),
    )


@pytest.fixture(scope="session")
def rich_hwpx(rich_instructions: DocumentInstructions) -> bytes:
    return engine.build(rich_instructions).data


def with_bin_data(package: bytes, entries: dict[str, bytes]) -> bytes:
    """Copy an HWPX package, adding ``BinData/`` entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(package)) as source, zipfile.ZipFile(buffer, "w") as target:
        for info in source.infolist():
            target.writestr(info, source.read(info.filename))
        for name, data in entries.items():
            target.writestr(f"BinData/{name}", data)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def hwpx_with_image(rich_hwpx: bytes) -> bytes:
    """The rich document: its logo picture is stored as BinData/BIN0001.png."""
    return rich_hwpx


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class StdioHarness:
    """Drives :func:`serve` over in-memory streams, one session per ``run``."""

    def __init__(self, settings: ServerSettings) -> None:
        self.settings = settings
        self._ids = itertools.count(1)

    def request(self, method: str, params: Any = None, *, request_id: Any = None) -> dict[str, Any]:
        message: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids) if request_id is None else request_id,
            "method": method,
        }
        if params is not None:
            message["params"] = params
        return message

    @staticmethod
    def notification(method: str, params: Any = None) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        return message

    def call(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        return self.request("tools/call", {"name": name, "arguments": arguments})

    def run(self, records: Iterable[Any]) -> list[dict[str, Any]]:
        lines = [record if isinstance(record, str) else json.dumps(record) for record in records]
        stdin = io.StringIO("\n".join(lines) + "\n")
        stdout = io.StringIO()
        serve(stdin, stdout, settings=self.settings)
        return [json.loads(line) for line in stdout.getvalue().splitlines() if line.strip()]

    def run_one(self, record: Any) -> dict[str, Any]:
        responses = self.run([record])
        assert len(responses) == 1, responses
        return responses[0]


@pytest.fixture()
def harness(settings: ServerSettings) -> StdioHarness:
    return StdioHarness(settings)


@pytest.fixture()
def server_env() -> dict[str, str]:
    env = os.environ.copy()
    src_path = str(_repo_root() / "src")
    existing = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = src_path if not existing else f"{src_path}{os.pathsep}{existing}"
    env["LOG_LEVEL"] = "WARNING"
    return env


@pytest.fixture()
def server_cmd() -> list[str]:
    return [sys.executable, "-m", "mcp_hwp.server", "serve", "--stdio"]
