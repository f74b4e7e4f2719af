"""JSON-RPC method routing for the stdio server."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Dict, Optional

import mcp.types as mcp_types

from . import SERVER_NAME, __version__
from .config import ServerSettings
from .core.results import error_result, success_result
from .errors import ToolError, classify
from .registry import ToolRegistry
from .transport import decode_record

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-11-25"
JSONRPC_VERSION = "2.0"


class RouterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class ProtocolError(Exception):
    """A failure reported as a JSON-RPC error object rather than a tool result."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    error = mcp_types.ErrorData(code=code, message=message)
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": error.model_dump(exclude_none=True, mode="json"),
    }


def _valid_id(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


class MethodRouter:
    """Turns one decoded record into at most one response.

    ``tools/list`` and ``tools/call`` are served before ``initialize`` as well;
    ``initialize`` only moves the router to :attr:`RouterState.READY`.
    """

    def __init__(self, registry: ToolRegistry, settings: ServerSettings) -> None:
        self.registry = registry
        self.settings = settings
        self.state = RouterState.UNINITIALIZED

    # ── records ───────────────────────────────────────

    def handle_record(self, record: str) -> Optional[Dict[str, Any]]:
        try:
            message = decode_record(record)
        except (ValueError, RecursionError) as exc:
            # RecursionError comes from the decoder on deeply nested arrays or objects
            logger.warning("malformed record", extra={"line_length": len(record), "error": str(exc)})
            return error_response(None, mcp_types.PARSE_ERROR, f"Parse error: {exc}")
        return self.handle_message(message)

    def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(message, dict):
            return error_response(None, mcp_types.INVALID_REQUEST, "Invalid Request: expected a JSON object")

        has_id = "id" in message
        request_id = message.get("id")
        method = message.get("method")
        if message.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str):
            return error_response(
                request_id if _valid_id(request_id) else None,
                mcp_types.INVALID_REQUEST,
                "Invalid Request: expected jsonrpc 2.0 with a method",
            )
        if has_id and not _valid_id(request_id):
            return error_response(None, mcp_types.INVALID_REQUEST, "Invalid Request: id must be a string or integer")

        try:
            result = self.dispatch(method, message.get("params"))
        except ProtocolError as exc:
            if not has_id:
                return None
            return error_response(request_id, exc.code, exc.message)

        if not has_id:
            return None
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    # ── methods ───────────────────────────────────────

    def dispatch(self, method: str, params: Any) -> Dict[str, Any]:
        if method == "tools/call":
            return self.call_tool(params)

        if params is not None and not isinstance(params, dict):
            raise ProtocolError(mcp_types.INVALID_PARAMS, f"Invalid params for {method}: expected an object")

        if method == "initialize":
            return self.initialize()
        if method == "notifications/initialized":
            return {}
        if method == "ping":
            return {}
        if method == "tools/list":
            self._note_early(method)
            return {"tools": self.registry.list_tools()}

        logger.info("unknown method", extra={"method": method})
        raise ProtocolError(mcp_types.METHOD_NOT_FOUND, f"Method not found: {method}")

    def initialize(self) -> Dict[str, Any]:
        self.state = RouterState.READY
        result = mcp_types.InitializeResult(
            protocolVersion=PROTOCOL_VERSION,
            capabilities=mcp_types.ServerCapabilities(tools=mcp_types.ToolsCapability()),
            serverInfo=mcp_types.Implementation(name=SERVER_NAME, version=__version__),
        )
        return result.model_dump(by_alias=True, exclude_none=True, mode="json")

    def call_tool(self, params: Any) -> Dict[str, Any]:
        self._note_early("tools/call")
        started = time.monotonic()
        name = params.get("name") if isinstance(params, dict) else None

        try:
            outcome = self._run_tool(params)
        except Exception as exc:  # noqa: BLE001
            error = classify(exc)
            elapsed_ms = int((time.monotonic() - started) * 1000)
            self._check_budget(name, elapsed_ms)
            logger.info(
                "tool call finished",
                extra={"tool": name, "is_error": True, "error_kind": error.kind.value, "elapsed_ms": elapsed_ms},
            )
            return error_result(error)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        warning = self._check_budget(name, elapsed_ms)
        if warning is not None:
            outcome.add_warning(warning)
        logger.info(
            "tool call finished",
            extra={"tool": name, "is_error": False, "error_kind": None, "elapsed_ms": elapsed_ms},
        )
        return success_result(outcome)

    def _run_tool(self, params: Any):
        if not isinstance(params, dict):
            raise ToolError.invalid_input("tools/call params must be an object")
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise ToolError.invalid_input("tools/call params.name is required")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ToolError.invalid_input("tools/call params.arguments must be an object")

        spec = self.registry.lookup(name)
        if spec is None:
            raise ToolError.invalid_input(f"tool not implemented: {name}")
        return spec.invoke(arguments, self.settings)

    def _check_budget(self, name: Optional[str], elapsed_ms: int) -> Optional[str]:
        budget_ms = self.settings.max_parse_ms
        if elapsed_ms <= budget_ms:
            return None
        logger.warning(
            "tool call exceeded processing budget",
            extra={"tool": name, "elapsed_ms": elapsed_ms, "budget_ms": budget_ms},
        )
        return f"processing took {elapsed_ms} ms, over the {budget_ms} ms budget"

    def _note_early(self, method: str) -> None:
        if self.state is RouterState.UNINITIALIZED:
            logger.debug("request before initialize", extra={"method": method})

