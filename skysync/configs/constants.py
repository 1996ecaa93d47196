"""
SkySync Constants

Static values that rarely change: protocol identifiers, JSON-RPC error
codes, subprocess environment allow-list, and timeout configuration.
"""

# --- MCP Protocol ---

MCP_PROTOCOL_VERSION = "2024-11-05"
JSONRPC_VERSION = "2.0"

CLIENT_INFO = {
    "name": "skysync-http-client",
    "version": "1.0.0",
}

SERVER_INFO = {
    "name": "skysync-mcp-server",
    "version": "1.0.0",
}

# --- JSON-RPC Error Codes ---

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000

# --- Subprocess Environment ---
# Only these variables are copied into the tool server's environment.

INHERITED_ENV_VARS = (
    "HOME",
    "LANG",
    "LC_ALL",
    "LOGNAME",
    "PATH",
    "PYTHONPATH",
    "SHELL",
    "SYSTEMROOT",
    "TERM",
    "TMPDIR",
    "USER",
    "VIRTUAL_ENV",
    "SKYSYNC_DATA_PATH",
    "SKYSYNC_DEBUG",
)

CREDENTIAL_ENV_VARS = (
    "FLIGHTAWARE_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
)

# --- Stream Limits ---

MAX_MESSAGE_BYTES = 16 * 1024 * 1024  # 16MB per framed message

# --- Timeout Configuration ---
# Centralized timeout values in seconds

TIMEOUTS = {
    # MCP session
    "mcp_handshake": 30,  # initialize round trip
    "mcp_shutdown": 3,  # grace period before SIGKILL
    # HTTP requests
    "http_default": 10,
    "flightaware": 15,
    "supabase": 10,
}


def get_timeout(key: str, default: int | float | None = None) -> int | float:
    """
    Get a timeout value by key.

    Args:
        key: Timeout key from TIMEOUTS dict
        default: Default value if key not found

    Returns:
        Timeout value in seconds
    """
    if default is None:
        default = TIMEOUTS.get("http_default", 10)
    return TIMEOUTS.get(key, default)
