"""
Tests for JSON-RPC envelope handling.
"""

import asyncio

import pytest

from skysync.gateway import Dispatcher, JsonRpcHandler, JsonRpcRequest
from skysync.session import SessionClient


@pytest.fixture
def handler(session):
    return JsonRpcHandler(Dispatcher(session))


def call(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "method": method, "id": request_id}
    if params is not None:
        message["params"] = params
    return message


class TestEnvelope:
    """Tests for request parsing and id handling."""

    def test_notification_detection(self):
        assert JsonRpcRequest.model_validate({"jsonrpc": "2.0", "method": "x"}).is_notification
        assert not JsonRpcRequest.model_validate({"jsonrpc": "2.0", "method": "x", "id": None}).is_notification

    async def test_string_id_is_echoed(self, handler):
        reply = await handler.handle_message(call("tools/list", request_id="abc-1"))

        assert reply["id"] == "abc-1"
        assert reply["jsonrpc"] == "2.0"
        assert "result" in reply

    async def test_integer_id_is_echoed(self, handler):
        reply = await handler.handle_message(call("ping", request_id=42))

        assert reply == {"jsonrpc": "2.0", "id": 42, "result": {}}

    @pytest.mark.parametrize(
        "message",
        [
            {"method": "tools/list", "id": 1},
            {"jsonrpc": "1.0", "method": "tools/list", "id": 1},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "method": 7, "id": 1},
            {"jsonrpc": "2.0", "method": "tools/list", "id": {"nested": True}},
            "not an object",
        ],
    )
    async def test_invalid_envelope(self, handler, message):
        reply = await handler.handle_message(message)

        assert reply["error"]["code"] == -32600

    async def test_invalid_envelope_keeps_usable_id(self, handler):
        reply = await handler.handle_message({"jsonrpc": "1.0", "method": "x", "id": "keep-me"})

        assert reply["id"] == "keep-me"


class TestMethods:
    """Tests for method routing."""

    async def test_initialize_answered_locally(self, handler, transport_factory):
        sent_before = len(transport_factory.latest.sent)

        reply = await handler.handle_message(call("initialize", {"protocolVersion": "2024-11-05"}))

        assert reply["result"]["serverInfo"]["name"] == "skysync-gateway"
        assert len(transport_factory.latest.sent) == sent_before

    async def test_unknown_method(self, handler):
        reply = await handler.handle_message(call("tools/explode"))

        assert reply["error"]["code"] == -32601

    async def test_tools_call_missing_name(self, handler):
        reply = await handler.handle_message(call("tools/call", {"arguments": {}}))

        assert reply["error"]["code"] == -32602

    async def test_params_must_be_object(self, handler):
        reply = await handler.handle_message(call("tools/call", ["echo"]))

        assert reply["error"]["code"] == -32602

    async def test_tools_call_returns_raw_result(self, handler):
        reply = await handler.handle_message(call("tools/call", {"name": "echo", "arguments": {"a": 1}}))

        assert reply["result"] == {"content": [{"type": "text", "text": '{"a": 1}'}]}

    async def test_tools_call_soft_error_is_a_result(self, handler):
        """Test that a tool-level error is returned as a result, not a JSON-RPC error."""
        reply = await handler.handle_message(
            call("tools/call", {"name": "flight_status", "arguments": {"airline_code": "DL", "flight_number": "1"}})
        )

        assert "error" not in reply
        assert '"Flight not found"' in reply["result"]["content"][0]["text"]

    async def test_short_aliases(self, handler):
        listed = await handler.handle_message(call("list"))
        called = await handler.handle_message(call("call", {"name": "echo"}, request_id=2))

        assert [tool["name"] for tool in listed["result"]["tools"]] == ["echo", "flight_status"]
        assert called["id"] == 2
        assert "result" in called

    async def test_resources_list(self, handler, transport_factory):
        reply = await handler.handle_message(call("resources/list", request_id=3))

        assert reply == {"jsonrpc": "2.0", "id": 3, "result": {"resources": []}}
        assert len(transport_factory.latest.requests("resources/list")) == 1

    async def test_resources_read(self, handler):
        reply = await handler.handle_message(call("resources/read", {"uri": "flight://history/+15550001111"}))

        assert reply["result"]["contents"][0]["uri"] == "flight://history/+15550001111"

    async def test_not_ready_is_server_error(self, settings, transport_factory):
        handler = JsonRpcHandler(Dispatcher(SessionClient(settings, transport_factory=transport_factory)))

        reply = await handler.handle_message(call("tools/list", request_id="r1"))

        assert reply["id"] == "r1"
        assert reply["error"]["code"] == -32000
        assert "not ready" in reply["error"]["message"]


class TestNotifications:
    """Tests for messages that expect no reply."""

    async def test_initialized_notification_has_no_reply(self, handler):
        reply = await handler.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"})

        assert reply is None

    async def test_notification_method_with_id_is_acknowledged(self, handler):
        reply = await handler.handle_message(call("notifications/initialized", request_id=3))

        assert reply == {"jsonrpc": "2.0", "id": 3, "result": {}}

    async def test_request_without_id_runs_in_background(self, handler, transport_factory):
        reply = await handler.handle_message(
            {"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "echo", "arguments": {"bg": True}}}
        )

        assert reply is None
        for _ in range(10):
            await asyncio.sleep(0)
        assert len(transport_factory.latest.requests("tools/call")) == 1


class TestBatch:
    """Tests for batch requests."""

    async def test_batch_replies_for_requests_only(self, handler):
        replies = await handler.handle_payload(
            [
                call("ping", request_id=1),
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                call("tools/explode", request_id=2),
            ]
        )

        assert [reply["id"] for reply in replies] == [1, 2]
        assert "error" in replies[1]

    async def test_notification_only_batch(self, handler):
        reply = await handler.handle_payload([{"jsonrpc": "2.0", "method": "notifications/initialized"}])

        assert reply is None

    async def test_empty_batch(self, handler):
        reply = await handler.handle_payload([])

        assert reply["error"]["code"] == -32600
        assert reply["id"] is None
