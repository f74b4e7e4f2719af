"""Narrow interface the dispatch layer uses to reach the document engine."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Sequence

from . import hwpx_writer, svg
from .errors import MalformedDocumentError, UnsupportedFeatureError
from .hwp_reader import is_hwp, read_hwp
from .hwpx_reader import is_hwpx, read_hwpx
from .model import BuildOutcome, DocumentHandle, DocumentInstructions, SvgPage

logger = logging.getLogger(__name__)

_READERS: Dict[str, Callable[[bytes], DocumentHandle]] = {"hwp": read_hwp, "hwpx": read_hwpx}


def _read_as(name: str, data: bytes) -> DocumentHandle:
    try:
        return _READERS[name](data)
    except MalformedDocumentError as exc:
        raise MalformedDocumentError(f"{name} parse failed: {exc}") from exc


def parse(data: bytes, format_hint: str = "auto") -> DocumentHandle:
    """Parse ``data`` as ``format_hint`` (``auto``, ``hwp`` or ``hwpx``)."""
    if format_hint in _READERS:
        return _read_as(format_hint, data)
    if format_hint != "auto":
        raise UnsupportedFeatureError(f"unsupported format: {format_hint}")

    if is_hwp(data):
        return _read_as("hwp", data)
    if is_hwpx(data):
        return _read_as("hwpx", data)

    failures: List[str] = []
    for name, reader in _READERS.items():
        try:
            return reader(data)
        except MalformedDocumentError as exc:
            failures.append(f"{name}: {exc}")
    logger.debug("no reader accepted the payload", extra={"attempts": failures})
    raise MalformedDocumentError(f"auto format parse failed ({'; '.join(failures)})")


def render(handle: DocumentHandle, pages: Sequence[int]) -> List[SvgPage]:
    return svg.render_pages(handle, pages)


def convert(handle: DocumentHandle, target: str) -> BuildOutcome:
    if target == "hwp":
        raise UnsupportedFeatureError("writing HWP 5 documents is not supported; convert to hwpx instead")
    if target != "hwpx":
        raise UnsupportedFeatureError(f"unsupported target format: {target}")
    if handle.format == "hwpx":
        return BuildOutcome(data=handle.source)
    return hwpx_writer.rebuild_from_handle(handle)


def build(instructions: DocumentInstructions, to: str = "hwpx") -> BuildOutcome:
    if to == "hwp":
        raise UnsupportedFeatureError("writing HWP 5 documents is not supported; use to=hwpx")
    if to != "hwpx":
        raise UnsupportedFeatureError(f"unsupported target format: {to}")
    return hwpx_writer.build_hwpx(instructions)


def build_plain(lines: Iterable[str]) -> bytes:
    return hwpx_writer.build_plain(lines)
