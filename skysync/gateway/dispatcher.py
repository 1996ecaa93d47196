"""
Gateway Dispatcher

The one place that knows how to turn a caller's request into a session
call and how to shape the outcome for each external surface.

Both HTTP surfaces go through a Dispatcher; neither touches the
SessionClient directly. The translation tables at the bottom of this module
are the only mapping from internal failures to caller-visible shapes.
"""

import json
from typing import Any, Mapping, Optional

from skysync.configs import get_logger
from skysync.configs.constants import (
    INVALID_PARAMS,
    MCP_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    SERVER_ERROR,
)
from skysync.exceptions import (
    InternalError,
    InvalidRequest,
    MethodNotFound,
    SessionNotReady,
    SkySyncError,
    TransportUnavailable,
    UpstreamError,
)
from skysync.session import SessionClient, ToolResult
from skysync.session.models import text_blocks
from skysync.version import GATEWAY_NAME, __version__

logger = get_logger("gateway.dispatcher")


class Dispatcher:
    """Validates, forwards and normalizes calls onto the shared session."""

    def __init__(self, session: SessionClient):
        self.session = session

    @property
    def ready(self) -> bool:
        return self.session.ready

    def health(self) -> dict[str, Any]:
        """Readiness snapshot for GET /health."""
        ready = self.session.ready
        return {
            "status": "ok" if ready else "unavailable",
            "mcpReady": ready,
            "session": self.session.state.value,
            "pending": self.session.pending_count,
        }

    def _require_ready(self) -> None:
        # Checked here so nothing reaches the transport while not READY
        if not self.session.ready:
            raise SessionNotReady(f"MCP client not ready (session {self.session.state.value})")

    # --- Tools ---

    async def list_tools(self) -> list[dict[str, Any]]:
        """Return the tool catalog announced by the subprocess."""
        self._require_ready()
        tools = await self.session.list_tools()
        return [tool.model_dump(exclude_none=True) for tool in tools]

    async def call_tool(self, name: Any, arguments: Any = None) -> ToolResult:
        """
        Call a tool by name.

        Soft errors come back as ToolError values, never as exceptions.

        Raises:
            InvalidRequest: name missing/empty or arguments not an object
            TransportUnavailable: session not ready or lost mid-call
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequest("Tool name is required")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidRequest("Tool arguments must be a JSON object", {"tool": name})

        self._require_ready()
        logger.info(f"Calling tool: {name}")
        result = await self.session.call_tool(name, arguments)
        if result.is_error:
            logger.info(f"Tool {name} reported an error: {result.message}")
        else:
            logger.debug(f"Tool {name} completed")
        return result

    # --- Resources ---

    async def read_resource(self, uri: Any) -> dict[str, Any]:
        """Read a resource. The result is passed through unmodified."""
        if not isinstance(uri, str) or not uri.strip():
            raise InvalidRequest("uri query parameter required")
        self._require_ready()
        logger.info(f"Reading resource: {uri}")
        return await self.session.read_resource(uri)

    async def list_resources(self) -> dict[str, Any]:
        self._require_ready()
        return await self.session.list_resources()

    # --- Prompts ---

    async def list_prompts(self) -> dict[str, Any]:
        self._require_ready()
        return await self.session.list_prompts()

    async def get_prompt(self, name: Any, arguments: Any = None) -> dict[str, Any]:
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequest("Prompt name is required")
        if arguments is not None and not isinstance(arguments, Mapping):
            raise InvalidRequest("Prompt arguments must be a JSON object", {"prompt": name})
        self._require_ready()
        return await self.session.get_prompt(name, arguments)

    # --- Protocol-only ---

    def initialize_result(self, params: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Answer a JSON-RPC peer's initialize locally, without the subprocess."""
        client = (params or {}).get("clientInfo") or {}
        logger.info(f"JSON-RPC initialize from {client.get('name', 'unknown client')}")
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {
                "tools": {},
                "resources": {},
                "prompts": {},
            },
            "serverInfo": {
                "name": GATEWAY_NAME,
                "version": __version__,
            },
        }


# =============================================================================
# Normalization
# =============================================================================


def flatten_content(content: list[dict[str, Any]]) -> Optional[str]:
    """Concatenate a text-only content sequence; None if any block is not text."""
    texts = text_blocks(content)
    if texts is None:
        return None
    return "".join(texts)


def normalize_tool_result(result: ToolResult) -> Any:
    """
    Shape a tool result for direct-surface callers.

    Text-only content becomes one string, decoded as JSON when it is JSON.
    Other content (images, embedded resources) is returned as the raw list.
    """
    text = flatten_content(result.content)
    if text is None:
        return result.content
    try:
        return json.loads(text)
    except ValueError:
        return text


# =============================================================================
# Error Translation
# =============================================================================


def http_status_for(error: BaseException) -> int:
    """HTTP status for the direct surface."""
    if isinstance(error, InvalidRequest):
        return 400
    if isinstance(error, TransportUnavailable):
        return 503
    return 500


def as_gateway_error(error: BaseException) -> SkySyncError:
    """Anything that is not already a SkySyncError becomes an InternalError."""
    if isinstance(error, SkySyncError):
        return error
    return InternalError("Internal server error", {"type": type(error).__name__})


def error_message(error: BaseException) -> str:
    return as_gateway_error(error).message


def jsonrpc_code_for(error: BaseException) -> int:
    """JSON-RPC error code for the envelope surface."""
    if isinstance(error, InvalidRequest):
        return INVALID_PARAMS
    if isinstance(error, MethodNotFound):
        return METHOD_NOT_FOUND
    return SERVER_ERROR


def jsonrpc_error_for(error: BaseException) -> dict[str, Any]:
    """Build the {code, message, data?} error object for an exception."""
    body: dict[str, Any] = {
        "code": jsonrpc_code_for(error),
        "message": error_message(error),
    }
    if isinstance(error, UpstreamError) and error.code is not None:
        body["data"] = {"upstreamCode": error.code}
    return body
