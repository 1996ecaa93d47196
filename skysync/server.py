"""
SkySync MCP Server

Flight tools, query history and the assistant prompt, served over stdio.
The HTTP gateway launches this module as its single upstream session.

Environment variables:
    FLIGHTAWARE_API_KEY: AeroAPI key
    SUPABASE_URL / SUPABASE_SERVICE_KEY: user store
    SKYSYNC_DEBUG: Enable debug logging (default: false)
"""

from mcp.server.fastmcp import FastMCP

from skysync.configs import get_logger, setup_logging
from skysync.configs.constants import SERVER_INFO
from skysync.tools import (
    get_flight_status,
    get_user_flight_history,
    log_user_query,
    search_flights_by_route,
)

# stdout carries the protocol; logs go to stderr and the server log file
setup_logging(process="server")
logger = get_logger("server")

mcp = FastMCP(SERVER_INFO["name"])

# --- Tools ---

mcp.tool()(get_flight_status)
mcp.tool()(search_flights_by_route)
mcp.tool()(log_user_query)


# --- Resources ---


@mcp.resource(
    "flight://history/{user_phone}",
    name="User Flight History",
    description="Past flight queries for a specific user",
    mime_type="application/json",
)
def flight_history(user_phone: str) -> str:
    return get_user_flight_history(user_phone)


# --- Prompts ---


@mcp.prompt(name="flight_assistant", description="System prompt for flight status assistant")
def flight_assistant(user_name: str = "traveler") -> str:
    return (
        f"You are SkySync, a helpful flight status assistant. Greet {user_name} warmly "
        "and help them check flight statuses, search routes, and get airport information. "
        "Be concise and friendly."
    )


def main() -> None:
    logger.info("SkySync MCP server running on stdio")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
