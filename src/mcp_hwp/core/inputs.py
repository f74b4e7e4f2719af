"""Input resolution: exactly one of a filesystem path or embedded base64 bytes."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import ErrorKind, ToolError
from ..utils.helpers import resolve_path

logger = logging.getLogger(__name__)


class FormatTag(str, Enum):
    AUTO = "auto"
    HWP = "hwp"
    HWPX = "hwpx"


@dataclass(frozen=True, slots=True)
class ResolvedInput:
    data: bytes
    format: FormatTag
    source: str


def parse_format(value: Optional[str]) -> FormatTag:
    if value is None:
        return FormatTag.AUTO
    try:
        return FormatTag(value)
    except ValueError:
        raise ToolError(ErrorKind.UNSUPPORTED_FORMAT, f"unsupported format: {value}") from None


def _estimated_decoded_length(encoded: str) -> int:
    padding = len(encoded) - len(encoded.rstrip("="))
    return max(0, len(encoded) * 3 // 4 - padding)


def decode_base64(encoded: str, *, max_bytes: int, source: str, label: str = "input") -> bytes:
    text = encoded.strip()
    if _estimated_decoded_length(text) > max_bytes:
        raise ToolError.too_large(f"{label} exceeds max size ({max_bytes} bytes)", source=source)
    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ToolError.invalid_input(f"invalid base64 {label}: {exc}", source=source) from exc
    if len(data) > max_bytes:
        raise ToolError.too_large(f"{label} exceeds max size ({max_bytes} bytes)", source=source)
    return data


def read_file(
    raw_path: str,
    *,
    max_bytes: int,
    source: str,
    sandbox_root: Path | None = None,
    label: str = "input",
) -> bytes:
    """Read a whole file, refusing before the read when it is over ``max_bytes``."""
    try:
        path = resolve_path(raw_path, sandbox_root=sandbox_root)
    except PermissionError as exc:
        raise ToolError.invalid_input(str(exc), source=source) from exc

    if not path.exists():
        raise ToolError.invalid_input(f"{label} file not found: {raw_path}", source=source)
    if path.is_dir():
        raise ToolError.invalid_input(f"{label} path is a directory: {raw_path}", source=source)
    if not path.is_file():
        # FIFOs and devices would block or never end
        raise ToolError.invalid_input(f"{label} path is not a regular file: {raw_path}", source=source)

    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise ToolError.too_large(f"{label} exceeds max size ({max_bytes} bytes)", source=source)
        with path.open("rb") as handle:
            data = handle.read(max_bytes + 1)
    except ToolError:
        raise
    except OSError as exc:
        raise ToolError.internal(f"failed to read {label}: {exc}", source=source) from exc

    if len(data) > max_bytes:
        raise ToolError.too_large(f"{label} exceeds max size ({max_bytes} bytes)", source=source)
    return data


def resolve_input(
    path: Optional[str],
    encoded: Optional[str],
    declared_format: Optional[str],
    *,
    max_bytes: int,
    sandbox_root: Path | None = None,
) -> ResolvedInput:
    if (path is None) == (encoded is None):
        raise ToolError.invalid_input("exactly one of 'path' or 'base64' is required")

    format_tag = parse_format(declared_format)
    if path is not None:
        source = f"path:{path}"
        data = read_file(path, max_bytes=max_bytes, source=source, sandbox_root=sandbox_root)
    else:
        source = "base64"
        data = decode_base64(encoded or "", max_bytes=max_bytes, source=source)

    logger.debug("resolved input", extra={"source": source, "bytes_len": len(data)})
    return ResolvedInput(data=data, format=format_tag, source=source)
