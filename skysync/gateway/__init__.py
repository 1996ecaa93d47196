"""
Gateway Core

Dispatcher and JSON-RPC routing shared by both HTTP surfaces.
"""

from skysync.gateway.dispatcher import (
    Dispatcher,
    as_gateway_error,
    error_message,
    http_status_for,
    jsonrpc_error_for,
    normalize_tool_result,
)
from skysync.gateway.jsonrpc import JsonRpcHandler, JsonRpcRequest

__all__ = [
    "Dispatcher",
    "JsonRpcHandler",
    "as_gateway_error",
    "error_message",
    "JsonRpcRequest",
    "http_status_for",
    "jsonrpc_error_for",
    "normalize_tool_result",
]
