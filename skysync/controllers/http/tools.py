"""
Direct Tool Endpoints

Tool-path style surface:
- GET  /tools              -> tool catalog
- POST /tools/{tool_name}  -> call a tool, body is the arguments object
- GET  /resources?uri=     -> read a resource
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from skysync.configs import get_logger
from skysync.controllers.http.deps import error_response, get_dispatcher
from skysync.exceptions import InvalidRequest
from skysync.gateway import Dispatcher, normalize_tool_result

logger = get_logger("http.tools")

router = APIRouter()


@router.get("/tools", response_model=None)
async def list_tools(dispatcher: Dispatcher = Depends(get_dispatcher)) -> dict[str, Any] | JSONResponse:
    """List the tools announced by the MCP server."""
    try:
        tools = await dispatcher.list_tools()
    except Exception as e:
        return error_response(e)
    return {"tools": tools}


@router.post("/tools/{tool_name}", response_model=None)
async def call_tool(
    tool_name: str,
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> dict[str, Any] | JSONResponse:
    """
    Call a tool with the request body as its arguments.

    Tool-level failures reported by the MCP server still answer 200 with
    the error payload under "result".
    """
    logger.info(f"POST /tools/{tool_name}")
    try:
        arguments = await _read_arguments(request)
        result = await dispatcher.call_tool(tool_name, arguments)
    except Exception as e:
        return error_response(e)
    return {"result": normalize_tool_result(result)}


@router.get("/resources", response_model=None)
async def read_resource(
    uri: Optional[str] = Query(default=None),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> dict[str, Any] | JSONResponse:
    """Read a resource by URI; contents are passed through verbatim."""
    try:
        return await dispatcher.read_resource(uri)
    except Exception as e:
        return error_response(e)


async def _read_arguments(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError as e:
        raise InvalidRequest(f"Request body is not valid JSON: {e}") from e
