"""
Auxiliary API Endpoints

Caller-context lookups for the voice agent and user registration.
These read the user store directly and never touch the MCP session.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from skysync.configs import get_logger
from skysync.controllers.http.deps import get_store
from skysync.exceptions import DuplicateUserError, SkySyncError
from skysync.storage import UserStore

logger = get_logger("http.api")

router = APIRouter()


# --- Request/Response Models ---


class RegisterRequest(BaseModel):
    """Request body for user registration."""
    phone_number: str = Field(pattern=r"^\+?\d{10,15}$")
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    home_airport: str = Field(pattern=r"^[A-Za-z]{3}$")


def _caller_context(phone_number: str, user: dict | None, flight: dict | None) -> dict[str, Any]:
    user = user or {}
    flight = flight or {}
    return {
        "caller_name": user.get("name") or "there",
        "phone_number": phone_number,
        "flight_number": flight.get("flight_number") or "",
        "origin": flight.get("origin") or "",
        "destination": flight.get("destination") or "",
        "departure_time": flight.get("departure_time") or "",
        "home_airport": user.get("home_airport") or "",
    }


def _lookup_context(store: UserStore, phone_number: str) -> dict[str, Any]:
    user = store.find_user(phone_number)
    flight = store.next_flight(user["id"]) if user else None
    return _caller_context(phone_number, user, flight)


# --- Endpoints ---


@router.get("/api/user-context/{phone_number}", response_model=None)
def get_user_context(phone_number: str, store: UserStore = Depends(get_store)) -> dict[str, Any] | JSONResponse:
    """
    Get caller context by phone number.

    Unknown callers get a greeting-friendly default ("there") and empty
    flight fields.
    """
    logger.info(f"Looking up caller context: {phone_number}")
    try:
        return _lookup_context(store, phone_number)
    except SkySyncError as e:
        logger.error(f"User context lookup failed: {e}")
        return JSONResponse(status_code=500, content={"error": e.message})


@router.post("/api/user-context", response_model=None)
def post_user_context(
    payload: Optional[dict[str, Any]] = Body(default=None),
    store: UserStore = Depends(get_store),
) -> dict[str, Any] | JSONResponse:
    """Dynamic-variables webhook (Telnyx). Phone is at data.payload.telnyx_end_user_target."""
    payload = payload or {}
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    event = data.get("payload") if isinstance(data.get("payload"), dict) else {}
    phone_number = event.get("telnyx_end_user_target") or ""

    if not phone_number:
        context = _caller_context("", None, None)
    else:
        try:
            context = _lookup_context(store, phone_number)
        except SkySyncError as e:
            logger.error(f"Webhook context lookup failed: {e}")
            return JSONResponse(status_code=500, content={"error": e.message})

    context.pop("phone_number")
    return {"dynamic_variables": context}


@router.post("/api/register", response_model=None)
def register_user(
    payload: dict[str, Any] = Body(...),
    store: UserStore = Depends(get_store),
) -> dict[str, Any] | JSONResponse:
    """Register a traveler for flight notifications."""
    try:
        request = RegisterRequest.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        return JSONResponse(status_code=400, content={"error": f"Invalid registration fields: {fields}"})

    try:
        user = store.create_user(
            phone_number=request.phone_number,
            name=request.name.strip(),
            email=request.email,
            home_airport=request.home_airport.upper(),
        )
    except DuplicateUserError:
        return JSONResponse(status_code=409, content={"error": "Phone number already registered"})
    except SkySyncError as e:
        logger.error(f"Registration failed: {e}")
        return JSONResponse(status_code=500, content={"error": e.message})

    return {"success": True, "user": user}
