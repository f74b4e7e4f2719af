from __future__ import annotations

import base64
import os
from pathlib import Path

import pytest

from mcp_hwp.core.inputs import FormatTag, decode_base64, parse_format, read_file, resolve_input
from mcp_hwp.errors import ErrorKind, ToolError


@pytest.mark.parametrize(
    ("path", "encoded"),
    [(None, None), ("doc.hwpx", "UEsDBA==")],
)
def test_exactly_one_source_is_required(path, encoded):
    with pytest.raises(ToolError) as info:
        resolve_input(path, encoded, None, max_bytes=1024)

    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert "exactly one of 'path' or 'base64'" in info.value.message


def test_format_hint_defaults_to_auto():
    assert parse_format(None) is FormatTag.AUTO
    assert parse_format("hwp") is FormatTag.HWP


def test_unknown_format_hint_is_unsupported():
    with pytest.raises(ToolError) as info:
        parse_format("docx")

    assert info.value.kind is ErrorKind.UNSUPPORTED_FORMAT


def test_base64_input_is_decoded():
    resolved = resolve_input(None, base64.b64encode(b"payload").decode(), "hwpx", max_bytes=1024)

    assert resolved.data == b"payload"
    assert resolved.format is FormatTag.HWPX
    assert resolved.source == "base64"


def test_oversized_base64_is_refused_before_decoding():
    # not valid base64, so only the size check can have produced the error
    encoded = "!" * 400

    with pytest.raises(ToolError) as info:
        decode_base64(encoded, max_bytes=16, source="base64")

    assert info.value.kind is ErrorKind.TOO_LARGE


def test_invalid_base64_is_invalid_input():
    with pytest.raises(ToolError) as info:
        decode_base64("not*base64", max_bytes=1024, source="base64")

    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert info.value.source == "base64"


def test_path_input_is_read(tmp_path: Path):
    target = tmp_path / "doc.hwpx"
    target.write_bytes(b"PK\x03\x04rest")

    resolved = resolve_input(str(target), None, None, max_bytes=1024)

    assert resolved.data == b"PK\x03\x04rest"
    assert resolved.source == f"path:{target}"


def test_missing_file_is_invalid_input(tmp_path: Path):
    with pytest.raises(ToolError) as info:
        read_file(str(tmp_path / "absent.hwp"), max_bytes=1024, source="path:absent.hwp")

    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert "not found" in info.value.message


def test_directory_is_invalid_input(tmp_path: Path):
    with pytest.raises(ToolError) as info:
        read_file(str(tmp_path), max_bytes=1024, source="path:dir")

    assert info.value.kind is ErrorKind.INVALID_INPUT


def test_oversized_file_is_too_large(tmp_path: Path):
    target = tmp_path / "big.hwp"
    target.write_bytes(b"x" * 100)

    with pytest.raises(ToolError) as info:
        read_file(str(target), max_bytes=99, source="path:big.hwp")

    assert info.value.kind is ErrorKind.TOO_LARGE


def test_file_at_the_limit_is_accepted(tmp_path: Path):
    target = tmp_path / "exact.hwp"
    target.write_bytes(b"x" * 100)

    assert len(read_file(str(target), max_bytes=100, source="path:exact.hwp")) == 100


def test_sandbox_rejects_paths_outside_root(tmp_path: Path):
    root = tmp_path / "sandbox"
    root.mkdir()
    outside = tmp_path / "outside.hwpx"
    outside.write_bytes(b"PK\x03\x04")

    with pytest.raises(ToolError) as info:
        resolve_input(str(outside), None, None, max_bytes=1024, sandbox_root=root.resolve())

    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert "sandbox" in info.value.message


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")
def test_fifo_is_refused_without_reading(tmp_path: Path):
    fifo = tmp_path / "pipe.hwp"
    os.mkfifo(fifo)

    with pytest.raises(ToolError) as info:
        read_file(str(fifo), max_bytes=1024, source="path:pipe.hwp")

    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert "not a regular file" in info.value.message


@pytest.mark.skipif(not Path("/dev/zero").exists(), reason="needs /dev/zero")
def test_character_device_is_refused():
    with pytest.raises(ToolError) as info:
        resolve_input("/dev/zero", None, None, max_bytes=1024)

    assert info.value.kind is ErrorKind.INVALID_INPUT
    assert info.value.source == "path:/dev/zero"
