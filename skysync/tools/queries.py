"""
Query Logging Tools

MCP tool and resource reader for a user's logged flight queries.
"""

import json
from typing import Optional

from skysync.configs import get_logger
from skysync.exceptions import SkySyncError, UserNotFoundError
from skysync.storage import UserStore, store_from_env, utc_today

logger = get_logger("tools.queries")

# Lazy-initialized store
_store: Optional[UserStore] = None


def get_store() -> UserStore:
    """Get or create the user store."""
    global _store
    if _store is None:
        _store = store_from_env()
    return _store


def log_user_query(user_phone: str, query: str, flight_info: Optional[str] = None) -> str:
    """
    Log user's flight query to database.

    Args:
        user_phone: User's phone number
        query: The query text
        flight_info: Flight information as JSON string

    Returns:
        JSON with success flag and the stored rows
    """
    logger.info(f"Logging query for {user_phone}")
    store = get_store()

    try:
        user = store.find_user(user_phone)
        if user is None:
            raise UserNotFoundError("User not found")

        flight_data = json.loads(flight_info) if flight_info else {}
        if not isinstance(flight_data, dict):
            flight_data = {}

        rows = store.add_flight(
            user["id"],
            {
                "flight_number": flight_data.get("flight_number") or query,
                "origin": flight_data.get("origin"),
                "destination": flight_data.get("destination"),
                "departure_time": flight_data.get("departure_time"),
                "flight_date": flight_data.get("flight_date") or utc_today(),
            },
        )
    except ValueError as e:
        return json.dumps({"error": f"Database error: invalid flight_info JSON ({e})"})
    except SkySyncError as e:
        logger.warning(f"Query logging failed for {user_phone}: {e}")
        return json.dumps({"error": f"Database error: {e.message}"})

    return json.dumps({"success": True, "data": rows})


def get_user_flight_history(user_phone: str) -> str:
    """
    Past flight queries for a user, newest first.

    Unknown users get an empty history rather than an error.
    """
    store = get_store()
    try:
        user = store.find_user(user_phone)
        if user is None:
            return json.dumps({"user": user_phone, "history": []})
        history = store.flight_history(user["id"])
    except SkySyncError as e:
        logger.warning(f"History lookup failed for {user_phone}: {e}")
        return json.dumps({"error": e.message})

    return json.dumps({"user": user_phone, "history": history})
