from __future__ import annotations

import itertools
from dataclasses import replace

import pytest
from mcp.types import INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR

import mcp_hwp.router as router_module
from conftest import StdioHarness, b64
from mcp_hwp.registry import ToolRegistry
from mcp_hwp.router import PROTOCOL_VERSION, MethodRouter, RouterState
from mcp_hwp.tools import extract_text


def _error_of(response: dict) -> dict:
    result = response["result"]
    assert result["isError"] is True, result
    return result["structuredContent"]["error"]


def test_initialize_reports_identity_and_tools_capability(harness):
    response = harness.run_one(harness.request("initialize", {"protocolVersion": PROTOCOL_VERSION}))

    result = response["result"]
    assert result["protocolVersion"] == PROTOCOL_VERSION
    assert result["serverInfo"]["name"] == "mcp-hwp"
    assert "tools" in result["capabilities"]


def test_initialize_flips_router_state(settings):
    router = MethodRouter(ToolRegistry(), settings)
    assert router.state is RouterState.UNINITIALIZED

    router.handle_message({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})

    assert router.state is RouterState.READY


def test_tools_list_is_stable_across_calls(harness, plain_hwpx):
    responses = harness.run(
        [
            harness.request("tools/list"),
            harness.call("extract_text", {"base64": b64(plain_hwpx)}),
            harness.call("no_such_tool", {}),
            harness.request("tools/list"),
        ]
    )

    first, last = responses[0]["result"]["tools"], responses[-1]["result"]["tools"]
    assert len(first) == 8
    assert first == last
    for tool in first:
        assert tool["inputSchema"]["type"] == "object"


def test_input_tools_publish_one_of_path_or_base64(harness):
    tools = {tool["name"]: tool for tool in harness.run_one(harness.request("tools/list"))["result"]["tools"]}

    assert tools["extract_text"]["inputSchema"]["oneOf"] == [{"required": ["path"]}, {"required": ["base64"]}]
    assert "oneOf" not in tools["create_document"]["inputSchema"]
    assert tools["create_document"]["inputSchema"]["required"] == ["text"]


def test_responses_follow_request_order(harness, plain_hwpx):
    requests = [harness.request("ping") for _ in range(3)]
    requests.insert(1, harness.call("inspect_metadata", {"base64": b64(plain_hwpx)}))

    responses = harness.run(requests)

    assert [response["id"] for response in responses] == [request["id"] for request in requests]


def test_string_ids_are_echoed(harness):
    response = harness.run_one(harness.request("ping", request_id="req-7"))

    assert response == {"jsonrpc": "2.0", "id": "req-7", "result": {}}


def test_malformed_record_gets_parse_error_and_loop_continues(harness):
    responses = harness.run(["{not json", harness.request("ping", request_id=2)])

    assert responses[0]["id"] is None
    assert responses[0]["error"]["code"] == PARSE_ERROR
    assert responses[1] == {"jsonrpc": "2.0", "id": 2, "result": {}}


def test_deeply_nested_record_gets_parse_error_and_loop_continues(harness):
    depth = 100_000
    responses = harness.run(["[" * depth + "]" * depth, harness.request("ping", request_id=2)])

    assert responses[0]["id"] is None
    assert responses[0]["error"]["code"] == PARSE_ERROR
    assert responses[1] == {"jsonrpc": "2.0", "id": 2, "result": {}}


def test_blank_lines_are_skipped(harness):
    responses = harness.run(["", "   ", harness.request("ping", request_id=1)])

    assert [response["id"] for response in responses] == [1]


@pytest.mark.parametrize(
    "record",
    [
        [1, 2, 3],
        {"id": 1, "method": "ping"},
        {"jsonrpc": "2.0", "id": 1},
        {"jsonrpc": "2.0", "id": 1.5, "method": "ping"},
        {"jsonrpc": "2.0", "id": True, "method": "ping"},
    ],
)
def test_invalid_requests(harness, record):
    response = harness.run_one(record)

    assert response["error"]["code"] == INVALID_REQUEST


def test_unknown_method(harness):
    response = harness.run_one(harness.request("resources/list", request_id=4))

    assert response["id"] == 4
    assert response["error"]["code"] == METHOD_NOT_FOUND
    assert "resources/list" in response["error"]["message"]


def test_non_object_params_on_plain_methods(harness):
    response = harness.run_one(harness.request("tools/list", [1, 2]))

    assert response["error"]["code"] == INVALID_PARAMS


def test_notifications_get_no_response(harness):
    responses = harness.run(
        [
            StdioHarness.notification("notifications/initialized"),
            StdioHarness.notification("unknown/notification"),
            StdioHarness.notification("tools/call", {"name": "extract_text", "arguments": {}}),
            harness.request("ping", request_id=9),
        ]
    )

    assert responses == [{"jsonrpc": "2.0", "id": 9, "result": {}}]


def test_tool_call_before_initialize_is_served(harness, plain_hwpx):
    response = harness.run_one(harness.call("extract_text", {"base64": b64(plain_hwpx)}))

    result = response["result"]
    assert result["isError"] is False
    assert result["content"] == [{"type": "text", "text": "a\n\nb"}]
    assert result["structuredContent"] == {"text": "a\n\nb"}


def test_unknown_tool_is_invalid_input(harness):
    error = _error_of(harness.run_one(harness.call("delete_everything", {})))

    assert error == {"kind": "invalid_input", "message": "tool not implemented: delete_everything"}


@pytest.mark.parametrize(
    ("params", "message"),
    [
        ({"arguments": {}}, "tools/call params.name is required"),
        ([], "tools/call params must be an object"),
        ({"name": "extract_text", "arguments": "x"}, "tools/call params.arguments must be an object"),
    ],
)
def test_malformed_tool_call_params(harness, params, message):
    error = _error_of(harness.run_one(harness.request("tools/call", params)))

    assert error["kind"] == "invalid_input"
    assert error["message"] == message


def test_unexpected_argument_is_invalid_input(harness, plain_hwpx):
    error = _error_of(harness.run_one(harness.call("extract_text", {"base64": b64(plain_hwpx), "colour": "red"})))

    assert error["kind"] == "invalid_input"
    assert "colour: unexpected argument" in error["message"]


def test_error_envelope_shape(harness):
    response = harness.run_one(harness.call("extract_text", {}))

    result = response["result"]
    assert result["content"][0]["type"] == "text"
    assert result["content"][0]["text"].startswith("Error: ")
    assert set(result["structuredContent"]) == {"error"}


def test_error_carries_source(harness):
    error = _error_of(harness.run_one(harness.call("extract_text", {"base64": b64(b"nonsense")})))

    assert error["kind"] == "parse_failed"
    assert error["source"] == "base64"


def test_unexpected_handler_failure_becomes_internal_error(harness, monkeypatch):
    def explode(args, settings):
        raise RuntimeError("engine fault")

    monkeypatch.setattr(extract_text, "open_document", explode)

    responses = harness.run(
        [
            harness.call("extract_text", {"base64": "AAAA"}),
            harness.request("ping", request_id="after"),
        ]
    )

    error = _error_of(responses[0])
    assert error["kind"] == "internal_error"
    assert error["message"] == "unexpected RuntimeError: engine fault"
    assert responses[1]["id"] == "after"


def test_resource_links_in_content(harness, plain_hwpx):
    response = harness.run_one(
        harness.call("render_svg", {"base64": b64(plain_hwpx), "output": "resource"})
    )

    content = response["result"]["content"]
    assert content[0]["type"] == "text"
    assert content[1]["type"] == "resource_link"
    assert content[1]["mimeType"] == "image/svg+xml"
    assert content[1]["uri"].startswith("file://")


def test_processing_budget_overrun_is_a_warning(settings, plain_hwpx, monkeypatch):
    ticks = itertools.count(start=0.0, step=5.0)
    monkeypatch.setattr(router_module.time, "monotonic", lambda: next(ticks))
    harness = StdioHarness(replace(settings, max_parse_ms=1000))

    response = harness.run_one(harness.call("inspect_metadata", {"base64": b64(plain_hwpx)}))

    result = response["result"]
    assert result["isError"] is False
    assert any("over the 1000 ms budget" in warning for warning in result["structuredContent"]["warnings"])
