"""
MCP Session Client

Request/response correlation over a single stdio transport.

One SessionClient owns one subprocess session. Every outgoing request gets
a monotonically increasing id and a waiter future in the pending map; the
transport's read loop resolves only the waiter whose id matches the
incoming response. When the session leaves READY, every pending waiter is
failed in the same call that changes the state.
"""

import asyncio
import itertools
from typing import Any, Callable, Mapping, Optional

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from skysync.configs import GatewaySettings, get_logger
from skysync.configs.constants import (
    CLIENT_INFO,
    JSONRPC_VERSION,
    MCP_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
)
from skysync.exceptions import (
    SessionBusy,
    SessionLost,
    SessionNotReady,
    SessionStartError,
    TransportUnavailable,
    UpstreamError,
    UpstreamTimeout,
)
from skysync.session.models import (
    SessionState,
    ToolDescriptor,
    ToolResult,
    classify_tool_result,
    tool_error_from_upstream,
)
from skysync.session.transport import StdioTransport

logger = get_logger("session")

TransportFactory = Callable[..., Any]


class SessionClient:
    """The gateway's single MCP session against the tool server subprocess."""

    def __init__(
        self,
        settings: GatewaySettings,
        transport_factory: TransportFactory = StdioTransport,
    ):
        self.settings = settings
        self._transport_factory = transport_factory
        self._transport = None
        self._state = SessionState.DISCONNECTED
        self._pending: dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._slots = asyncio.Semaphore(settings.max_in_flight)
        self._waiting = 0
        self._tools: Optional[list[ToolDescriptor]] = None
        self._server_info: dict[str, Any] = {}
        self._server_capabilities: dict[str, Any] = {}
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closing = False

    # --- State ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def server_info(self) -> dict[str, Any]:
        return dict(self._server_info)

    @property
    def server_capabilities(self) -> dict[str, Any]:
        return dict(self._server_capabilities)

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.info(f"Session state: {self._state.value} -> {state.value}")
            self._state = state

    # --- Lifecycle ---

    async def connect(self) -> None:
        """
        Launch the tool server and perform the initialize handshake.

        The session becomes READY only after the server acknowledges
        initialize. Raises SessionStartError on launch or handshake failure.
        """
        if self._state in (SessionState.READY, SessionState.CONNECTING):
            return
        self._closing = False
        self._set_state(SessionState.CONNECTING)
        try:
            await self._establish()
        except BaseException:
            if self._state is SessionState.CONNECTING:
                self._set_state(SessionState.DISCONNECTED)
            raise
        self._set_state(SessionState.READY)

    async def _establish(self) -> None:
        transport = self._transport_factory(
            command=self.settings.server_command,
            env=self.settings.server_env,
            cwd=self.settings.server_cwd,
            on_message=self._handle_message,
            on_close=lambda reason: self._handle_transport_closed(transport, reason),
        )
        self._transport = transport

        try:
            await transport.start()
            result = await self._send_request(
                "initialize",
                {
                    "protocolVersion": MCP_PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": CLIENT_INFO,
                },
                timeout=self.settings.handshake_timeout,
            )
            if not isinstance(result, dict) or "protocolVersion" not in result:
                raise SessionStartError("Invalid initialize response from MCP server", {"result": result})
            await self._send_notification("notifications/initialized")
            # The server may exit right after acknowledging initialize
            if self._transport is not transport or not transport.running:
                raise SessionStartError("MCP server exited during handshake")
        except (TransportUnavailable, UpstreamError, UpstreamTimeout, SessionStartError) as e:
            await self._discard_transport(transport)
            if isinstance(e, SessionStartError):
                raise
            raise SessionStartError(f"MCP handshake failed: {e}") from e

        self._server_info = result.get("serverInfo") or {}
        self._server_capabilities = result.get("capabilities") or {}
        logger.info(
            f"Connected to MCP server {self._server_info.get('name', 'unknown')} "
            f"{self._server_info.get('version', '')} (protocol {result['protocolVersion']})"
        )

    async def _discard_transport(self, transport) -> None:
        if transport is self._transport:
            self._transport = None
        await transport.close()

    async def close(self) -> None:
        """Shut the session down for good. No reconnection follows."""
        self._closing = True
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        transport = self._transport
        if transport is not None:
            await transport.close()
        self._fail_pending(SessionLost("Session closed"))
        self._set_state(SessionState.CLOSED)

    def _handle_transport_closed(self, transport, reason: str) -> None:
        """Transport callback: the subprocess exited or the stream broke."""
        if transport is not self._transport:
            return
        was_ready = self._state is SessionState.READY
        self._transport = None
        self._tools = None

        if self._closing:
            self._set_state(SessionState.CLOSED)
        elif self._state in (SessionState.CONNECTING, SessionState.RECONNECTING):
            # connect()/_reconnect() own the state during a handshake
            pass
        else:
            self._set_state(SessionState.DISCONNECTED)
        self._fail_pending(SessionLost(f"MCP session lost: {reason}"))

        if was_ready and not self._closing and self.settings.reconnect_attempts > 0:
            self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect())
        elif was_ready:
            logger.error("MCP session lost; gateway will answer 503 until restarted")

    def _fail_pending(self, error: Exception) -> None:
        pending, self._pending = self._pending, {}
        if pending:
            logger.warning(f"Failing {len(pending)} pending request(s): {error}")
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    async def _reconnect(self) -> None:
        self._set_state(SessionState.RECONNECTING)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.reconnect_attempts),
            wait=wait_exponential(multiplier=0.5, max=self.settings.reconnect_backoff_max),
            retry=retry_if_exception_type(SessionStartError),
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if self._closing:
                        return
                    number = attempt.retry_state.attempt_number
                    logger.info(f"Reconnecting to MCP server (attempt {number}/{self.settings.reconnect_attempts})")
                    await self._establish()
        except RetryError:
            logger.error(f"MCP server did not come back after {self.settings.reconnect_attempts} attempt(s)")
            self._set_state(SessionState.DISCONNECTED)
            return
        except asyncio.CancelledError:
            if self._state is SessionState.RECONNECTING:
                self._set_state(SessionState.DISCONNECTED)
            raise
        if not self._closing:
            self._set_state(SessionState.READY)

    # --- Messaging ---

    def _handle_message(self, message: dict[str, Any]) -> None:
        """Transport callback: route one decoded message."""
        if "method" in message:
            self._handle_server_message(message)
            return

        request_id = message.get("id")
        future = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
        if future is None or future.done():
            logger.debug(f"Discarding response for unknown or finished request id={request_id!r}")
            return

        if "error" in message:
            error = message.get("error") or {}
            future.set_exception(
                UpstreamError(
                    str(error.get("message", "Unknown upstream error")),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            )
        else:
            future.set_result(message.get("result"))

    def _handle_server_message(self, message: dict[str, Any]) -> None:
        method = message["method"]
        if "id" not in message:
            logger.debug(f"Server notification: {method}")
            if method == "notifications/tools/list_changed":
                self._tools = None
            return

        # Server-initiated request
        if method == "ping":
            reply = {"jsonrpc": JSONRPC_VERSION, "id": message["id"], "result": {}}
        else:
            reply = {
                "jsonrpc": JSONRPC_VERSION,
                "id": message["id"],
                "error": {"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"},
            }
        asyncio.get_running_loop().create_task(self._send_quietly(reply))

    async def _send_quietly(self, message: dict[str, Any]) -> None:
        transport = self._transport
        if transport is None:
            return
        try:
            await transport.send(message)
        except TransportUnavailable as e:
            logger.debug(f"Could not answer server request: {e}")

    async def _send_notification(self, method: str, params: Optional[Mapping[str, Any]] = None) -> None:
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not None:
            message["params"] = dict(params)
        transport = self._transport
        if transport is None:
            raise SessionLost("MCP server is not running")
        await transport.send(message)

    async def _send_request(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        transport = self._transport
        if transport is None:
            raise SessionLost("MCP server is not running")

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method}
        if params is not None:
            message["params"] = dict(params)

        try:
            try:
                await transport.send(message)
            except TransportUnavailable:
                # The broken pipe already failed this waiter; mark it consumed
                if future.done() and not future.cancelled():
                    future.exception()
                raise
            if timeout is None:
                return await future
            try:
                return await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Request {method} (id={request_id}) timed out after {timeout}s")
                await self._send_quietly(
                    {
                        "jsonrpc": JSONRPC_VERSION,
                        "method": "notifications/cancelled",
                        "params": {"requestId": request_id, "reason": "timeout"},
                    }
                )
                raise UpstreamTimeout(f"{method} timed out after {timeout}s", {"request_id": request_id})
        finally:
            self._pending.pop(request_id, None)

    async def request(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send one request and wait for its correlated response.

        Args:
            method: MCP method name (e.g. "tools/call")
            params: Request params
            timeout: Seconds to wait; falls back to settings.call_timeout,
                     None waits until the response or session loss

        Raises:
            SessionNotReady: session is not READY at call time
            SessionBusy: the wait queue is full
            SessionLost: session left READY while the call was outstanding
            UpstreamError: subprocess answered with a JSON-RPC error
            UpstreamTimeout: no answer within the timeout
        """
        if not self.ready:
            raise SessionNotReady(f"MCP session is {self._state.value}")

        if self._slots.locked() and self._waiting >= self.settings.max_queue:
            raise SessionBusy(
                "Too many requests waiting for the MCP session",
                {"in_flight": self.settings.max_in_flight, "queued": self._waiting},
            )

        self._waiting += 1
        try:
            await self._slots.acquire()
        finally:
            self._waiting -= 1
        try:
            # The session may have dropped while this call was queued
            if not self.ready:
                raise SessionNotReady(f"MCP session is {self._state.value}")
            effective_timeout = timeout if timeout is not None else self.settings.call_timeout
            return await self._send_request(method, params, timeout=effective_timeout)
        finally:
            self._slots.release()

    # --- Typed MCP methods ---

    async def list_tools(self, refresh: bool = False) -> list[ToolDescriptor]:
        """List the server's tools, following pagination. Cached until invalidated."""
        if self._tools is not None and not refresh:
            if not self.ready:
                raise SessionNotReady(f"MCP session is {self._state.value}")
            return list(self._tools)

        tools: list[ToolDescriptor] = []
        cursor = None
        while True:
            params = {"cursor": cursor} if cursor else None
            result = await self.request("tools/list", params) or {}
            tools.extend(ToolDescriptor.model_validate(tool) for tool in result.get("tools", []))
            cursor = result.get("nextCursor")
            if not cursor:
                break
        self._tools = tools
        logger.debug(f"Cached {len(tools)} tool descriptor(s)")
        return list(tools)

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ToolResult:
        """
        Invoke a tool and tag the outcome.

        A JSON-RPC error answering tools/call is folded into a ToolError;
        transport failures still raise.
        """
        params = {"name": name, "arguments": dict(arguments or {})}
        try:
            result = await self.request("tools/call", params, timeout=timeout)
        except UpstreamError as e:
            logger.info(f"Tool {name} rejected by MCP server: {e.message}")
            return tool_error_from_upstream(e.message)
        return classify_tool_result(result if isinstance(result, dict) else {})

    async def list_resources(self) -> dict[str, Any]:
        return await self.request("resources/list") or {}

    async def read_resource(self, uri: str, timeout: Optional[float] = None) -> dict[str, Any]:
        return await self.request("resources/read", {"uri": uri}, timeout=timeout) or {}

    async def list_prompts(self) -> dict[str, Any]:
        return await self.request("prompts/list") or {}

    async def get_prompt(self, name: str, arguments: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
        params: dict[str, Any] = {"name": name}
        if arguments:
            params["arguments"] = dict(arguments)
        return await self.request("prompts/get", params) or {}

    async def ping(self) -> None:
        await self.request("ping")
