"""Helpers shared by the tool handlers."""

from __future__ import annotations

from typing import Tuple

from ..config import ServerSettings
from ..contracts import DocumentInputArgs
from ..core.inputs import ResolvedInput, resolve_input
from ..engine import api as engine
from ..engine.errors import EngineError
from ..engine.model import DocumentHandle
from ..errors import ToolError, classify


def load_input(args: DocumentInputArgs, settings: ServerSettings) -> ResolvedInput:
    # a key sent as null still counts as supplied
    if {"path", "base64"} <= args.model_fields_set:
        raise ToolError.invalid_input("exactly one of 'path' or 'base64' is required")
    return resolve_input(
        args.path,
        args.base64,
        args.format,
        max_bytes=settings.limits.max_input_bytes,
        sandbox_root=settings.sandbox_root,
    )


def open_document(args: DocumentInputArgs, settings: ServerSettings) -> Tuple[ResolvedInput, DocumentHandle]:
    """Resolve the input and parse it; engine failures come back classified with their source."""
    resolved = load_input(args, settings)
    try:
        handle = engine.parse(resolved.data, resolved.format.value)
    except EngineError as exc:
        raise classify(exc, source=resolved.source) from exc
    return resolved, handle
