"""
Pytest fixtures for SkySync tests.
"""

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

# Add project root to path for skysync imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Keep config.yaml and log files out of the real home directory
os.environ["SKYSYNC_DATA_PATH"] = tempfile.mkdtemp(prefix="skysync_test_")

from skysync.configs import GatewaySettings  # noqa: E402
from skysync.exceptions import SessionLost, SessionStartError  # noqa: E402
from skysync.session import SessionClient  # noqa: E402

FAKE_SERVER = Path(__file__).parent / "fake_mcp_server.py"

# Handler return value meaning "leave this request unanswered"
HOLD = object()


class ScriptedError(Exception):
    """Raised by a handler to answer with a JSON-RPC error."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _echo_tool(params: dict) -> Any:
    name = params.get("name")
    arguments = params.get("arguments", {})
    if name == "echo":
        return {"content": [{"type": "text", "text": json.dumps(arguments)}]}
    if name == "flight_status":
        ident = f"{arguments.get('airline_code', '')}{arguments.get('flight_number', '')}"
        return {"content": [{"type": "text", "text": json.dumps({"error": "Flight not found", "flight": ident})}]}
    if name == "plain":
        return {"content": [{"type": "text", "text": "hello "}, {"type": "text", "text": "world"}]}
    if name == "image":
        return {"content": [{"type": "image", "data": "aGk=", "mimeType": "image/png"}]}
    return {"content": [{"type": "text", "text": f"Unknown tool: {name}"}], "isError": True}


DEFAULT_TOOLS = [
    {"name": "echo", "description": "Echo arguments", "inputSchema": {"type": "object"}},
    {"name": "flight_status", "description": "Flight status", "inputSchema": {"type": "object"}},
]


def default_handlers() -> dict[str, Callable[[dict], Any]]:
    return {
        "initialize": lambda params: {
            "protocolVersion": "2024-11-05",
            "capabilities": {"tools": {}, "resources": {}},
            "serverInfo": {"name": "scripted", "version": "0.0.1"},
        },
        "tools/list": lambda params: {"tools": DEFAULT_TOOLS},
        "tools/call": _echo_tool,
        "resources/list": lambda params: {"resources": []},
        "resources/read": lambda params: {
            "contents": [{"uri": params["uri"], "mimeType": "application/json", "text": "{}"}]
        },
        "prompts/list": lambda params: {"prompts": [{"name": "flight_assistant"}]},
        "prompts/get": lambda params: {"messages": [{"role": "user", "content": {"type": "text", "text": "hi"}}]},
        "ping": lambda params: {},
    }


class ScriptedTransport:
    """In-memory MCP peer. Answers each request on the next event-loop tick."""

    def __init__(
        self,
        command,
        env,
        on_message,
        on_close,
        cwd=None,
        handlers: Optional[dict] = None,
        fail_start: bool = False,
    ):
        self.command = command
        self.env = env
        self.on_message = on_message
        self.on_close = on_close
        self.handlers = handlers if handlers is not None else default_handlers()
        self.fail_start = fail_start
        self.sent: list[dict] = []
        self.held: dict[int, dict] = {}
        self.running = False

    async def start(self) -> None:
        if self.fail_start:
            raise SessionStartError("scripted launch failure")
        self.running = True

    async def send(self, message: dict) -> None:
        if not self.running:
            raise SessionLost("scripted transport is not running")
        self.sent.append(message)
        if "method" in message and "id" in message:
            asyncio.get_running_loop().call_soon(self._answer, message)

    async def close(self) -> None:
        if self.running:
            self.running = False
            self.on_close("transport closed")

    def _answer(self, message: dict) -> None:
        if not self.running:
            return
        handler = self.handlers.get(message["method"])
        if handler is None:
            self.respond(message["id"], error={"code": -32601, "message": f"Method not found: {message['method']}"})
            return
        try:
            result = handler(message.get("params") or {})
        except ScriptedError as e:
            self.respond(message["id"], error={"code": e.code, "message": e.message})
            return
        if result is HOLD:
            self.held[message["id"]] = message
            return
        self.respond(message["id"], result=result)

    def respond(self, request_id: Any, result: Any = None, error: Optional[dict] = None) -> None:
        self.held.pop(request_id, None)
        reply = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            reply["error"] = error
        else:
            reply["result"] = result
        self.on_message(reply)

    def crash(self, reason: str = "MCP server exited with code 1") -> None:
        self.running = False
        self.on_close(reason)

    def requests(self, method: str) -> list[dict]:
        return [m for m in self.sent if m.get("method") == method and "id" in m]


class ScriptedTransportFactory:
    """Transport factory handed to SessionClient; remembers every transport built."""

    def __init__(self, handlers: Optional[dict] = None, fail_starts: int = 0, transport_class=None):
        self.handlers = handlers if handlers is not None else default_handlers()
        self.fail_starts = fail_starts
        self.transport_class = transport_class or ScriptedTransport
        self.created: list[ScriptedTransport] = []

    def __call__(self, **kwargs) -> ScriptedTransport:
        fail = len(self.created) < self.fail_starts
        transport = self.transport_class(handlers=self.handlers, fail_start=fail, **kwargs)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> ScriptedTransport:
        return self.created[-1]

    def all_sent(self) -> list[dict]:
        return [m for t in self.created for m in t.sent]


def make_settings(**overrides) -> GatewaySettings:
    values = {
        "server_command": ("scripted-mcp-server",),
        "server_env": {},
        "reconnect_attempts": 0,
        "handshake_timeout": 5.0,
    }
    values.update(overrides)
    return GatewaySettings(**values)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def transport_factory() -> ScriptedTransportFactory:
    return ScriptedTransportFactory()


@pytest.fixture
def settings() -> GatewaySettings:
    return make_settings()


@pytest.fixture
async def session(settings, transport_factory):
    """A connected SessionClient over a scripted transport."""
    client = SessionClient(settings, transport_factory=transport_factory)
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def fake_server_settings() -> GatewaySettings:
    """Settings that launch the stdlib fake MCP server as a real subprocess."""
    from skysync.configs import build_server_env

    return make_settings(
        server_command=(sys.executable, str(FAKE_SERVER)),
        server_env=build_server_env(),
    )
