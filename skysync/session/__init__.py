"""
MCP Session

The single stdio session between the gateway and the tool server:
transport, correlating client, and result models.
"""

from skysync.session.client import SessionClient
from skysync.session.models import (
    SessionState,
    ToolDescriptor,
    ToolError,
    ToolOk,
    ToolResult,
    classify_tool_result,
)
from skysync.session.transport import StdioTransport

__all__ = [
    "SessionClient",
    "SessionState",
    "StdioTransport",
    "ToolDescriptor",
    "ToolError",
    "ToolOk",
    "ToolResult",
    "classify_tool_result",
]
