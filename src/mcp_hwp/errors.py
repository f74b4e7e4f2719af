"""Closed error taxonomy and the single place raw failures are classified."""

from __future__ import annotations

import binascii
import logging
import zipfile
from enum import Enum
from typing import Any, Dict, Optional

from lxml import etree
from pydantic import BaseModel, ConfigDict, ValidationError

from .engine.errors import (
    EncryptedDocumentError,
    EngineError,
    EngineInputError,
    MalformedDocumentError,
    UnsupportedFeatureError,
)

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    TOO_LARGE = "too_large"
    UNSUPPORTED_FORMAT = "unsupported_format"
    ENCRYPTED = "encrypted"
    PARSE_FAILED = "parse_failed"
    INTERNAL_ERROR = "internal_error"


class ToolError(Exception):
    """A failure already classified into one of the six :class:`ErrorKind` values."""

    def __init__(self, kind: ErrorKind, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.source = source

    @classmethod
    def invalid_input(cls, message: str, *, source: str | None = None) -> "ToolError":
        return cls(ErrorKind.INVALID_INPUT, message, source=source)

    @classmethod
    def too_large(cls, message: str, *, source: str | None = None) -> "ToolError":
        return cls(ErrorKind.TOO_LARGE, message, source=source)

    @classmethod
    def internal(cls, message: str, *, source: str | None = None) -> "ToolError":
        return cls(ErrorKind.INTERNAL_ERROR, message, source=source)

    def with_source(self, source: str | None) -> "ToolError":
        if self.source is not None or source is None:
            return self
        return ToolError(self.kind, self.message, source=source)

    def to_payload(self) -> Dict[str, Any]:
        return ToolErrorModel(kind=self.kind, message=self.message, source=self.source).model_dump(
            mode="json", exclude_none=True
        )

    def __repr__(self) -> str:
        return f"ToolError({self.kind.value!r}, {self.message!r})"


class ToolErrorModel(BaseModel):
    """Payload published under ``structuredContent.error``."""

    model_config = ConfigDict(extra="forbid")

    kind: ErrorKind
    message: str
    source: Optional[str] = None


_ENGINE_KIND: tuple[tuple[type[EngineError], ErrorKind], ...] = (
    (EncryptedDocumentError, ErrorKind.ENCRYPTED),
    (UnsupportedFeatureError, ErrorKind.UNSUPPORTED_FORMAT),
    (MalformedDocumentError, ErrorKind.PARSE_FAILED),
    (EngineInputError, ErrorKind.INVALID_INPUT),
)


def _location(loc: tuple) -> str:
    text = ""
    for item in loc:
        if isinstance(item, int):
            text += f"[{item}]"
        elif item != "__root__":
            text += f".{item}" if text else str(item)
    return text


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = _location(tuple(error.get("loc", ())))
        message = error.get("msg", "invalid value")
        if error.get("type") == "extra_forbidden":
            message = "unexpected argument"
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid arguments"


def classify(exc: BaseException, *, source: str | None = None) -> ToolError:
    """Map any failure onto the closed :class:`ErrorKind` set."""

    if isinstance(exc, ToolError):
        return exc.with_source(source)

    if isinstance(exc, EngineError):
        for engine_type, kind in _ENGINE_KIND:
            if isinstance(exc, engine_type):
                return ToolError(kind, str(exc), source=source)
        return ToolError(ErrorKind.PARSE_FAILED, str(exc), source=source)

    if isinstance(exc, ValidationError):
        return ToolError.invalid_input(_validation_message(exc), source=source)
    if isinstance(exc, (binascii.Error, UnicodeError)):
        return ToolError.invalid_input(f"invalid encoding: {exc}", source=source)
    if isinstance(exc, (zipfile.BadZipFile, etree.XMLSyntaxError)):
        return ToolError(ErrorKind.PARSE_FAILED, f"document structure is invalid: {exc}", source=source)
    if isinstance(exc, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
        return ToolError.invalid_input(str(exc), source=source)
    if isinstance(exc, PermissionError):
        return ToolError.invalid_input(str(exc), source=source)
    if isinstance(exc, OSError):
        return ToolError.internal(f"i/o failure: {exc}", source=source)

    logger.error(
        "unclassified failure",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"error_type": type(exc).__name__},
    )
    return ToolError.internal(f"unexpected {type(exc).__name__}: {exc}", source=source)
