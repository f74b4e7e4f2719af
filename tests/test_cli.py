from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import b64
from mcp_hwp.server import build_parser, main


def _run(*argv: str) -> int:
    return main(["--log-level", "CRITICAL", *argv])


@pytest.fixture()
def document(tmp_path: Path) -> Path:
    target = tmp_path / "doc.hwpx"
    assert _run("create-document", "--text", "첫 줄\n둘째 줄", "--output-path", str(target)) == 0
    return target


def test_create_document_writes_file(document: Path):
    assert document.exists()
    assert document.read_bytes().startswith(b"PK")


def test_extract_text_prints_text(document: Path, capsys):
    capsys.readouterr()

    assert _run("extract-text", "--path", str(document)) == 0

    assert capsys.readouterr().out == "첫 줄\n둘째 줄\n"


def test_extract_text_flags(document: Path, capsys):
    capsys.readouterr()

    assert _run("extract-text", "--path", str(document), "--no-newlines", "--max-chars", "4") == 0

    assert capsys.readouterr().out == "첫 줄 \n"


def test_json_flag_prints_structured_content(document: Path, capsys):
    capsys.readouterr()

    assert _run("inspect-metadata", "--path", str(document), "--json") == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["format"] == "hwpx"
    assert payload["paragraphs"] == 2


def test_base64_input(plain_hwpx, capsys):
    assert _run("summarize-structure", "--base64", b64(plain_hwpx), "--preview-chars", "10") == 0

    assert capsys.readouterr().out.strip() == "sections: 1, paragraphs: 3 (preview_chars=10)"


def test_render_svg_pages(document: Path, capsys):
    capsys.readouterr()

    assert _run("render-svg", "--path", str(document), "--page", "1", "--json") == 0

    payload = json.loads(capsys.readouterr().out)
    assert [page["page"] for page in payload["pages"]] == [1]


def test_convert_to_hwp_fails_with_kind(document: Path, capsys):
    capsys.readouterr()

    assert _run("convert", "--path", str(document), "--to", "hwp") == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[unsupported_format]" in captured.err


def test_missing_file_exits_non_zero(tmp_path: Path, capsys):
    assert _run("extract-text", "--path", str(tmp_path / "absent.hwp")) == 1

    assert "[invalid_input]" in capsys.readouterr().err


def test_extract_rich_defaults_to_metadata(document: Path, capsys):
    capsys.readouterr()

    assert _run("extract-rich", "--path", str(document), "--json") == 0

    payload = json.loads(capsys.readouterr().out)
    assert [block["text"] for block in payload["blocks"]] == ["첫 줄", "둘째 줄"]


def test_serve_requires_stdio(capsys):
    assert _run("serve") == 2

    assert "--stdio" in capsys.readouterr().err


def test_input_flags_are_mutually_exclusive(capsys):
    with pytest.raises(SystemExit) as info:
        build_parser().parse_args(["extract-text", "--path", "a.hwp", "--base64", "AAAA"])

    assert info.value.code == 2


def test_input_is_required(capsys):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["inspect-metadata"])
