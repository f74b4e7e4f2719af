"""Newline-delimited JSON record framing over text streams."""

from __future__ import annotations

import json
from typing import Any, Iterator, Optional, TextIO


def read_records(stream: TextIO) -> Iterator[str]:
    """Yield one non-blank line at a time until end of stream."""
    while True:
        line = stream.readline()
        if not line:
            return
        record = line.strip()
        if record:
            yield record


def decode_record(record: str) -> Any:
    return json.loads(record)


def encode_record(message: Any) -> str:
    # compact separators keep each message on a single line
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"))


def write_record(stream: TextIO, message: Optional[Any]) -> None:
    if message is None:
        return
    stream.write(encode_record(message) + "\n")
    stream.flush()
