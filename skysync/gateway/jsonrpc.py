"""
JSON-RPC Envelope Handling

Parses JSON-RPC 2.0 requests (single or batch), routes them by method to
the Dispatcher and builds response envelopes. Shared by POST /tools and
POST /mcp so both entry paths have the same method set.
"""

import asyncio
from typing import Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel, StrictInt, StrictStr, ValidationError

from skysync.configs import get_logger
from skysync.configs.constants import INVALID_REQUEST, JSONRPC_VERSION, PARSE_ERROR
from skysync.exceptions import InvalidRequest, MethodNotFound
from skysync.gateway.dispatcher import Dispatcher, jsonrpc_error_for

logger = get_logger("gateway.jsonrpc")

RequestId = Union[StrictStr, StrictInt, None]


class JsonRpcRequest(BaseModel):
    """Inbound JSON-RPC 2.0 request or notification."""

    jsonrpc: Literal["2.0"]
    method: StrictStr
    id: RequestId = None
    params: Any = None

    @property
    def is_notification(self) -> bool:
        # An explicit "id": null is still a request
        return "id" not in self.model_fields_set


def success(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def failure(request_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def parse_error(detail: str) -> dict[str, Any]:
    return failure(None, PARSE_ERROR, f"Parse error: {detail}")


def _salvage_id(raw: Any) -> Any:
    """Best-effort id for replying to a malformed envelope."""
    if isinstance(raw, dict):
        candidate = raw.get("id")
        if isinstance(candidate, (str, int)) and not isinstance(candidate, bool):
            return candidate
    return None


def _object_params(params: Any) -> dict[str, Any]:
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidRequest("params must be an object")
    return params


Handler = Callable[[dict[str, Any]], Awaitable[Any]]


class JsonRpcHandler:
    """Routes JSON-RPC methods onto a Dispatcher."""

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher
        self._background: set[asyncio.Task] = set()
        self._methods: dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "list": self._tools_list,
            "tools/call": self._tools_call,
            "call": self._tools_call,
            "resources/list": self._resources_list,
            "resources/read": self._resources_read,
            "prompts/list": self._prompts_list,
            "prompts/get": self._prompts_get,
        }

    async def handle_payload(self, payload: Any) -> Optional[Union[dict[str, Any], list[dict[str, Any]]]]:
        """
        Handle a decoded request body.

        Returns the response envelope, a list of envelopes for a batch, or
        None when nothing needs to be sent back (notifications only).
        """
        if isinstance(payload, list):
            if not payload:
                return failure(None, INVALID_REQUEST, "Invalid Request: empty batch")
            replies = await asyncio.gather(*(self.handle_message(item) for item in payload))
            batch = [reply for reply in replies if reply is not None]
            return batch or None
        return await self.handle_message(payload)

    async def handle_message(self, raw: Any) -> Optional[dict[str, Any]]:
        """Handle one envelope. Never raises."""
        try:
            request = JsonRpcRequest.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Invalid JSON-RPC envelope: {e.errors()[0].get('msg', 'invalid')}")
            return failure(_salvage_id(raw), INVALID_REQUEST, "Invalid Request")

        if request.method.startswith("notifications/"):
            logger.debug(f"Received notification: {request.method}")
            if request.is_notification:
                return None
            # Someone sent a notification method with an id; acknowledge it
            return success(request.id, {})

        if request.is_notification:
            self._run_in_background(request)
            return None

        return await self._dispatch(request)

    async def _dispatch(self, request: JsonRpcRequest) -> dict[str, Any]:
        handler = self._methods.get(request.method)
        try:
            if handler is None:
                raise MethodNotFound(f"Method not found: {request.method}")
            result = await handler(_object_params(request.params))
        except Exception as e:
            if not isinstance(e, (InvalidRequest, MethodNotFound)):
                logger.error(f"JSON-RPC {request.method} (id={request.id!r}) failed: {e}")
            error = jsonrpc_error_for(e)
            return failure(request.id, error["code"], error["message"], error.get("data"))
        return success(request.id, result)

    def _run_in_background(self, request: JsonRpcRequest) -> None:
        """Execute a fire-and-forget request without holding the HTTP reply."""

        async def run() -> None:
            reply = await self._dispatch(request)
            if "error" in reply:
                logger.warning(f"Notification {request.method} failed: {reply['error']['message']}")

        task = asyncio.get_running_loop().create_task(run())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # --- Methods ---

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.dispatcher.initialize_result(params)

    async def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": await self.dispatcher.list_tools()}

    async def _tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        result = await self.dispatcher.call_tool(params.get("name"), params.get("arguments"))
        # JSON-RPC callers get the untouched upstream result
        return result.raw or {"content": result.content, "isError": result.is_error}

    async def _resources_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return await self.dispatcher.list_resources()

    async def _resources_read(self, params: dict[str, Any]) -> dict[str, Any]:
        return await self.dispatcher.read_resource(params.get("uri"))

    async def _prompts_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return await self.dispatcher.list_prompts()

    async def _prompts_get(self, params: dict[str, Any]) -> dict[str, Any]:
        return await self.dispatcher.get_prompt(params.get("name"), params.get("arguments"))
