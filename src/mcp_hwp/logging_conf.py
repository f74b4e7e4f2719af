"""Logging helpers for the mcp-hwp server.

stdout carries protocol records, so every handler installed here writes to
stderr.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

_DEFAULT_LEVEL = "INFO"

_RESERVED_ATTRS = frozenset(
    {
        "args",
        "name",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "exc_text",
        "stack_info",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON-line formatter that folds ``extra=`` fields into the payload."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for name, value in record.__dict__.items():
            if name in payload or name.startswith("_") or name in _RESERVED_ATTRS:
                continue
            if name == "exc_info":
                continue
            payload[name] = value
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level_name: str | None = None) -> None:
    """Configure process-wide logging for structured output on stderr."""

    level_text = (level_name or os.getenv("LOG_LEVEL") or _DEFAULT_LEVEL).upper()
    level = getattr(logging, level_text, None)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers[:] = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("mcp_hwp").setLevel(level)
