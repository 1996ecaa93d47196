"""
MCP Protocol Endpoints

JSON-RPC 2.0 surface. POST /tools and POST /mcp accept the same envelopes
and share one handler. Replies are always HTTP 200; notifications get an
empty 200.
"""

import json

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from skysync.configs import get_logger
from skysync.controllers.http.deps import get_jsonrpc_handler
from skysync.gateway import JsonRpcHandler
from skysync.gateway.jsonrpc import parse_error

logger = get_logger("http.mcp")

router = APIRouter()


@router.post("/tools")
@router.post("/mcp")
async def jsonrpc_endpoint(
    request: Request,
    handler: JsonRpcHandler = Depends(get_jsonrpc_handler),
) -> Response:
    """Handle a JSON-RPC request, notification or batch."""
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.warning(f"Invalid JSON on {request.url.path}: {e}")
        return JSONResponse(parse_error(str(e)))

    reply = await handler.handle_payload(payload)
    if reply is None:
        return Response(status_code=200)
    return JSONResponse(reply)
