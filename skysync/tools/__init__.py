"""
SkySync MCP Tools

Tool implementations served by the MCP tool server:
1. get_flight_status - Real-time status of one flight
2. search_flights_by_route - Nonstop flights between two airports
3. log_user_query - Record a user's flight query
"""

from skysync.tools.flights import get_flight_status, search_flights_by_route
from skysync.tools.queries import get_user_flight_history, log_user_query

__all__ = [
    # Flights
    "get_flight_status",
    "search_flights_by_route",
    # Queries
    "log_user_query",
    "get_user_flight_history",
]
