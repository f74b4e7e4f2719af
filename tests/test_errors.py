from __future__ import annotations

import zipfile

import pytest
from pydantic import ValidationError

from mcp_hwp.contracts import CreateRichDocumentArgs, ExtractTextArgs
from mcp_hwp.engine.errors import (
    EncryptedDocumentError,
    EngineError,
    EngineInputError,
    MalformedDocumentError,
    UnsupportedFeatureError,
)
from mcp_hwp.errors import ErrorKind, ToolError, classify


def test_error_kind_is_closed():
    assert {kind.value for kind in ErrorKind} == {
        "invalid_input",
        "too_large",
        "unsupported_format",
        "encrypted",
        "parse_failed",
        "internal_error",
    }


def test_tool_error_passes_through_and_keeps_existing_source():
    original = ToolError.too_large("input exceeds max size", source="base64")

    assert classify(original, source="path:x.hwp") is original


def test_tool_error_gains_source_when_missing():
    classified = classify(ToolError.invalid_input("bad"), source="path:x.hwp")

    assert classified.kind is ErrorKind.INVALID_INPUT
    assert classified.source == "path:x.hwp"


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (EncryptedDocumentError("locked"), ErrorKind.ENCRYPTED),
        (UnsupportedFeatureError("no hwp writer"), ErrorKind.UNSUPPORTED_FORMAT),
        (MalformedDocumentError("broken"), ErrorKind.PARSE_FAILED),
        (EngineInputError("page out of range: 3"), ErrorKind.INVALID_INPUT),
        (EngineError("generic"), ErrorKind.PARSE_FAILED),
    ],
)
def test_engine_errors_are_reclassified(exc, kind):
    classified = classify(exc, source="base64")

    assert classified.kind is kind
    assert classified.message == str(exc)
    assert classified.source == "base64"


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (zipfile.BadZipFile("not a zip"), ErrorKind.PARSE_FAILED),
        (FileNotFoundError("missing.hwp"), ErrorKind.INVALID_INPUT),
        (IsADirectoryError("dir"), ErrorKind.INVALID_INPUT),
        (PermissionError("outside sandbox"), ErrorKind.INVALID_INPUT),
        (UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"), ErrorKind.INVALID_INPUT),
        (OSError("disk full"), ErrorKind.INTERNAL_ERROR),
        (RuntimeError("boom"), ErrorKind.INTERNAL_ERROR),
    ],
)
def test_raw_failures_are_classified(exc, kind):
    assert classify(exc).kind is kind


def test_unexpected_failure_message_names_the_type():
    classified = classify(KeyError("sections"))

    assert classified.kind is ErrorKind.INTERNAL_ERROR
    assert classified.message.startswith("unexpected KeyError")


def test_validation_error_reports_unexpected_argument():
    with pytest.raises(ValidationError) as info:
        ExtractTextArgs.model_validate({"path": "a.hwp", "bogus": 1})

    classified = classify(info.value)

    assert classified.kind is ErrorKind.INVALID_INPUT
    assert "bogus: unexpected argument" in classified.message


def test_validation_error_location_uses_block_indices():
    arguments = {"document": {"blocks": [{"type": "heading", "level": "high", "text": "t"}]}}
    with pytest.raises(ValidationError) as info:
        CreateRichDocumentArgs.model_validate(arguments)

    classified = classify(info.value)

    assert classified.message.startswith("document.blocks[0].heading.level")


def test_payload_omits_absent_source():
    assert ToolError.invalid_input("bad").to_payload() == {"kind": "invalid_input", "message": "bad"}
    assert ToolError.internal("io", source="base64").to_payload() == {
        "kind": "internal_error",
        "message": "io",
        "source": "base64",
    }
