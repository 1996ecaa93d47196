"""
Session Models

Connection state, tool catalog entries and the tagged tool-call result.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    """Lifecycle of the single upstream MCP session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class ToolDescriptor(BaseModel):
    """A tool announced by the subprocess in its tools/list response."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str
    description: Optional[str] = None
    inputSchema: dict[str, Any] = Field(default_factory=lambda: {"type": "object"})


@dataclass(frozen=True)
class ToolOk:
    """Tool ran and returned content."""

    content: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    is_error = False


@dataclass(frozen=True)
class ToolError:
    """Tool ran (or was rejected by the subprocess) and reported a problem.

    This is a successful transport round trip carrying an application-level
    error, not a transport failure.
    """

    message: str
    content: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    is_error = True


ToolResult = Union[ToolOk, ToolError]


def text_blocks(content: list[dict[str, Any]]) -> Optional[list[str]]:
    """Return the texts of a text-only content sequence, None otherwise."""
    texts = []
    for block in content:
        if not isinstance(block, dict) or block.get("type") != "text":
            return None
        texts.append(str(block.get("text", "")))
    return texts


def _soft_error_message(content: list[dict[str, Any]]) -> Optional[str]:
    texts = text_blocks(content)
    if not texts:
        return None
    try:
        payload = json.loads("".join(texts))
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return None


def classify_tool_result(result: dict[str, Any]) -> ToolResult:
    """
    Tag a raw tools/call result as ToolOk or ToolError.

    A result is a soft error when it sets isError, or when its text content
    decodes to a JSON object with an "error" key.
    """
    content = result.get("content")
    if not isinstance(content, list):
        content = []

    message = _soft_error_message(content)
    if message is not None:
        return ToolError(message=message, content=content, raw=result)

    if result.get("isError"):
        texts = text_blocks(content)
        message = "".join(texts) if texts else "Tool reported an error"
        return ToolError(message=message, content=content, raw=result)

    return ToolOk(content=content, raw=result)


def tool_error_from_upstream(message: str) -> ToolError:
    """Wrap a JSON-RPC error answering tools/call in the soft-error shape."""
    content = [{"type": "text", "text": json.dumps({"error": message})}]
    return ToolError(message=message, content=content, raw={"content": content, "isError": True})
