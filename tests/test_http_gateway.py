"""
Tests for the gateway HTTP surfaces.

Direct tool-path endpoints:
- GET  /tools
- POST /tools/{tool_name}
- GET  /resources?uri=

JSON-RPC endpoints:
- POST /tools
- POST /mcp
"""

import pytest
from fastapi.testclient import TestClient

from skysync.controllers.http import create_app
from skysync.exceptions import SessionStartError
from skysync.session import SessionClient, SessionState
from conftest import ScriptedTransportFactory


@pytest.fixture
def gateway(settings, transport_factory):
    """Test client whose lifespan connects a scripted session."""
    session = SessionClient(settings, transport_factory=transport_factory)
    app = create_app(settings, session=session, store=object())
    with TestClient(app) as client:
        yield client


class TestLifespan:
    """Tests for session startup and shutdown with the app."""

    def test_startup_connects_session(self, gateway, transport_factory):
        assert transport_factory.latest.running
        assert gateway.app.state.session.ready

    def test_shutdown_closes_session(self, settings, transport_factory):
        session = SessionClient(settings, transport_factory=transport_factory)
        app = create_app(settings, session=session, store=object())

        with TestClient(app):
            pass

        assert session.state is SessionState.CLOSED
        assert not transport_factory.latest.running

    def test_launch_failure_aborts_startup(self, settings):
        factory = ScriptedTransportFactory(fail_starts=1)
        app = create_app(settings, session=SessionClient(settings, transport_factory=factory), store=object())

        with pytest.raises(SessionStartError):
            with TestClient(app):
                pass


class TestHealth:
    """Tests for GET /health."""

    def test_health_ready(self, gateway):
        response = gateway.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["mcpReady"] is True
        assert data["session"] == "ready"
        assert "startedAt" in data
        assert "version" in data

    def test_health_after_crash(self, gateway, transport_factory):
        transport_factory.latest.crash()

        data = gateway.get("/health").json()

        assert data["status"] == "unavailable"
        assert data["mcpReady"] is False


class TestDirectSurface:
    """Tests for the tool-path endpoints."""

    def test_list_tools(self, gateway):
        response = gateway.get("/tools")

        assert response.status_code == 200
        assert [tool["name"] for tool in response.json()["tools"]] == ["echo", "flight_status"]

    def test_call_tool_normalizes_json(self, gateway):
        response = gateway.post("/tools/echo", json={"airport": "LAX"})

        assert response.status_code == 200
        assert response.json() == {"result": {"airport": "LAX"}}

    def test_soft_error_is_200(self, gateway):
        """Test that a tool-level error answers 200 with the error under result."""
        response = gateway.post("/tools/flight_status", json={"airline_code": "DL", "flight_number": "100"})

        assert response.status_code == 200
        assert response.json() == {"result": {"error": "Flight not found", "flight": "DL100"}}

    def test_empty_body_means_no_arguments(self, gateway, transport_factory):
        response = gateway.post("/tools/echo")

        assert response.status_code == 200
        assert response.json() == {"result": {}}
        assert transport_factory.latest.requests("tools/call")[-1]["params"]["arguments"] == {}

    def test_invalid_json_body(self, gateway):
        response = gateway.post("/tools/echo", content=b"{nope", headers={"content-type": "application/json"})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_non_object_body(self, gateway):
        response = gateway.post("/tools/echo", json=[1, 2, 3])

        assert response.status_code == 400

    def test_resource_without_uri(self, gateway, transport_factory):
        """Test that a missing uri is rejected before any resources/read request."""
        response = gateway.get("/resources")

        assert response.status_code == 400
        assert response.json() == {"error": "uri query parameter required"}
        assert transport_factory.latest.requests("resources/read") == []

    def test_read_resource(self, gateway):
        response = gateway.get("/resources", params={"uri": "flight://history/+15550001111"})

        assert response.status_code == 200
        assert response.json()["contents"][0]["uri"] == "flight://history/+15550001111"

    def test_not_ready_is_503(self, gateway, transport_factory):
        transport_factory.latest.crash()

        tools = gateway.get("/tools")
        called = gateway.post("/tools/echo", json={})

        assert tools.status_code == 503
        assert called.status_code == 503
        assert "not ready" in called.json()["error"]


class TestJsonRpcSurface:
    """Tests for POST /mcp and POST /tools."""

    @pytest.mark.parametrize("path", ["/mcp", "/tools"])
    def test_tools_list(self, gateway, path):
        response = gateway.post(path, json={"jsonrpc": "2.0", "id": "abc-1", "method": "tools/list"})

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "abc-1"
        assert len(data["result"]["tools"]) == 2

    def test_tools_call(self, gateway):
        response = gateway.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 5, "method": "tools/call", "params": {"name": "echo", "arguments": {"x": 1}}},
        )

        assert response.json()["result"]["content"][0]["text"] == '{"x": 1}'

    def test_notification_gets_empty_200(self, gateway):
        response = gateway.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})

        assert response.status_code == 200
        assert response.content == b""

    def test_parse_error(self, gateway):
        response = gateway.post("/mcp", content=b"{not json", headers={"content-type": "application/json"})

        assert response.status_code == 200
        data = response.json()
        assert data["error"]["code"] == -32700
        assert data["id"] is None

    def test_errors_use_http_200(self, gateway):
        response = gateway.post("/mcp", json={"jsonrpc": "2.0", "id": 9, "method": "tools/explode"})

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32601

    def test_batch(self, gateway):
        response = gateway.post(
            "/mcp",
            json=[
                {"jsonrpc": "2.0", "id": 1, "method": "ping"},
                {"jsonrpc": "2.0", "id": 2, "method": "initialize", "params": {}},
            ],
        )

        data = response.json()
        assert [reply["id"] for reply in data] == [1, 2]

    def test_not_ready_is_jsonrpc_error(self, gateway, transport_factory):
        transport_factory.latest.crash()

        response = gateway.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32000
