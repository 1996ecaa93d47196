"""
User Store

Users and their flights, kept in Supabase and reached through its
PostgREST endpoint (/rest/v1/<table>). Rows are keyed by phone number.

Tables:
    users(id, phone_number, name, email, home_airport)
    user_flights(id, user_id, flight_number, origin, destination,
                 departure_time, flight_date)
"""

from datetime import datetime, timezone
from typing import Any, Optional

from skysync.configs import get_logger, get_timeout
from skysync.exceptions import ClientError, DuplicateUserError, HTTPRequestError, MissingConfigError, StorageError
from skysync.utils.http_client import http_json_get, http_json_post

logger = get_logger("storage.users")

HISTORY_LIMIT = 10


def utc_today() -> str:
    """Today's date (UTC) as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


class UserStore:
    """Thin PostgREST client for the users and user_flights tables."""

    def __init__(self, url: str, key: str, timeout: Optional[float] = None):
        self.url = url.rstrip("/")
        self.key = key
        self.timeout = timeout if timeout is not None else get_timeout("supabase")

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)

    def _endpoint(self, table: str) -> str:
        if not self.configured:
            raise MissingConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        return f"{self.url}/rest/v1/{table}"

    def _headers(self, write: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }
        if write:
            headers["Prefer"] = "return=representation"
        return headers

    def _select(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            rows = http_json_get(self._endpoint(table), params=params, headers=self._headers(), timeout=self.timeout)
        except ClientError as e:
            raise StorageError(f"Failed to query {table}: {e.message}", e.details) from e
        return rows if isinstance(rows, list) else []

    def _insert(self, table: str, row: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            rows = http_json_post(self._endpoint(table), json=row, headers=self._headers(write=True), timeout=self.timeout)
        except HTTPRequestError as e:
            if e.status_code == 409:
                raise DuplicateUserError(f"Duplicate row in {table}", e.details) from e
            raise StorageError(f"Failed to insert into {table}: {e.message}", e.details) from e
        except ClientError as e:
            raise StorageError(f"Failed to insert into {table}: {e.message}", e.details) from e
        return rows if isinstance(rows, list) else []

    # --- Users ---

    def find_user(self, phone_number: str) -> Optional[dict[str, Any]]:
        """Look up a user by phone number."""
        rows = self._select("users", {"select": "*", "phone_number": f"eq.{phone_number}", "limit": 1})
        return rows[0] if rows else None

    def create_user(self, phone_number: str, name: str, email: str, home_airport: str) -> dict[str, Any]:
        """Register a user. Raises DuplicateUserError if the phone is taken."""
        if self.find_user(phone_number) is not None:
            raise DuplicateUserError("User already registered", {"phone_number": phone_number})
        rows = self._insert(
            "users",
            {
                "phone_number": phone_number,
                "name": name,
                "email": email,
                "home_airport": home_airport,
            },
        )
        logger.info(f"Registered user {phone_number}")
        return rows[0] if rows else {}

    # --- Flights ---

    def next_flight(self, user_id: Any, today: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Earliest flight on or after today for a user."""
        rows = self._select(
            "user_flights",
            {
                "select": "*",
                "user_id": f"eq.{user_id}",
                "flight_date": f"gte.{today or utc_today()}",
                "order": "flight_date.asc",
                "limit": 1,
            },
        )
        return rows[0] if rows else None

    def flight_history(self, user_id: Any, limit: int = HISTORY_LIMIT) -> list[dict[str, Any]]:
        """Most recent flights first."""
        return self._select(
            "user_flights",
            {
                "select": "*",
                "user_id": f"eq.{user_id}",
                "order": "flight_date.desc",
                "limit": limit,
            },
        )

    def add_flight(self, user_id: Any, flight: dict[str, Any]) -> list[dict[str, Any]]:
        """Insert one user_flights row and return the stored rows."""
        return self._insert("user_flights", {"user_id": user_id, **flight})
