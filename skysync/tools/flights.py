"""
Flight Tools

MCP tools backed by the FlightAware AeroAPI.

Every failure is reported as a JSON {"error": ...} text result, never as
a raised exception, so callers always get a tool result back.
"""

import json
import os
from typing import Any

from skysync.configs import get_logger, get_timeout
from skysync.exceptions import SkySyncError
from skysync.utils.http_client import http_json_get

logger = get_logger("tools.flights")

FLIGHTAWARE_BASE_URL = "https://aeroapi.flightaware.com/aeroapi"


def _headers() -> dict[str, str]:
    return {"x-apikey": os.environ.get("FLIGHTAWARE_API_KEY", "")}


def _airport_code(airport: Any) -> Any:
    if not isinstance(airport, dict):
        return None
    return airport.get("code_iata") or airport.get("code")


def get_flight_status(airline_code: str, flight_number: str) -> str:
    """
    Get real-time status of a specific flight.

    Args:
        airline_code: Two-letter airline code (e.g., 'DL', 'AA')
        flight_number: Flight number (e.g., '1234')

    Returns:
        JSON with ident, status, origin, destination and schedule times
    """
    ident = f"{airline_code}{flight_number}"
    logger.info(f"Flight status lookup: {ident}")

    try:
        data = http_json_get(
            f"{FLIGHTAWARE_BASE_URL}/flights/{ident}",
            params={"max_pages": 1},
            headers=_headers(),
            timeout=get_timeout("flightaware"),
        )
    except SkySyncError as e:
        logger.warning(f"FlightAware lookup failed for {ident}: {e}")
        return json.dumps({"error": f"FlightAware API error: {e.message}"})

    flights = (data.get("flights") or []) if isinstance(data, dict) else []
    if not flights:
        return json.dumps({"error": "Flight not found", "flight": ident})

    flight = flights[0]
    return json.dumps(
        {
            "ident": flight.get("ident"),
            "status": flight.get("status"),
            "origin": _airport_code(flight.get("origin")),
            "destination": _airport_code(flight.get("destination")),
            "scheduled_departure": flight.get("scheduled_off"),
            "scheduled_arrival": flight.get("scheduled_on"),
            "actual_departure": flight.get("actual_off"),
            "estimated_arrival": flight.get("estimated_on"),
        },
        indent=2,
    )


def search_flights_by_route(origin: str, destination: str) -> str:
    """
    Search for nonstop airline flights between two airports.

    Args:
        origin: Origin airport code (e.g., 'LAX')
        destination: Destination airport code (e.g., 'JFK')

    Returns:
        JSON with route, count and one entry per flight
    """
    route = f"{origin} to {destination}"
    logger.info(f"Route search: {route}")

    try:
        data = http_json_get(
            f"{FLIGHTAWARE_BASE_URL}/airports/{origin}/flights/to/{destination}",
            params={"type": "Airline", "connection": "nonstop", "max_pages": 1},
            headers=_headers(),
            timeout=get_timeout("flightaware"),
        )
    except SkySyncError as e:
        logger.warning(f"FlightAware route search failed for {route}: {e}")
        return json.dumps({"error": f"Could not retrieve flights: {e.message}", "route": route})

    all_flights = (data.get("flights") or []) if isinstance(data, dict) else []
    if not all_flights:
        return json.dumps({"route": route, "flights": [], "message": "No nonstop flights found on this route"})

    # First segment of each itinerary
    segments = [flight["segments"][0] for flight in all_flights if flight.get("segments")]
    flights = [
        {
            "flight_number": segment.get("ident_iata") or segment.get("ident"),
            "airline": segment.get("operator_iata") or segment.get("operator"),
            "departure_time": segment.get("scheduled_out") or segment.get("estimated_out"),
            "arrival_time": segment.get("scheduled_in") or segment.get("estimated_in"),
            "status": segment.get("status"),
        }
        for segment in segments
    ]

    return json.dumps({"route": route, "count": len(flights), "flights": flights}, indent=2)
