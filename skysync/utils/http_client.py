"""
Standardized HTTP Client Utilities

Provides a consistent interface for outbound HTTP calls (FlightAware,
Supabase). Uses `requests` for synchronous calls with standardized error
handling.

Usage:
    from skysync.utils.http_client import http_json_get

    data = http_json_get(
        "https://aeroapi.flightaware.com/aeroapi/flights/DL100",
        headers={"x-apikey": key},
        params={"max_pages": 1},
    )
"""

from typing import Any

import requests

from skysync.configs.constants import get_timeout
from skysync.exceptions import HTTPConnectionError, HTTPRequestError, HTTPTimeoutError

# Default timeout for HTTP requests (seconds)
DEFAULT_TIMEOUT = get_timeout("http_default", 10)


def http_request(
    method: str,
    url: str,
    params: dict[str, Any] | None = None,
    json: Any = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    raise_for_status: bool = True,
) -> requests.Response:
    """
    Make an HTTP request with standardized error handling.

    Args:
        method: HTTP method
        url: Request URL
        params: Query string parameters
        json: JSON body
        headers: Optional headers dict
        timeout: Request timeout in seconds
        raise_for_status: Raise HTTPRequestError on 4xx/5xx responses

    Returns:
        requests.Response object

    Raises:
        HTTPConnectionError: Connection failed
        HTTPTimeoutError: Request timed out
        HTTPRequestError: Bad status code (if raise_for_status=True) or unusable request (bad URL)
    """
    try:
        response = requests.request(method, url, params=params, json=json, headers=headers, timeout=timeout)
        if raise_for_status:
            response.raise_for_status()
        return response
    except requests.exceptions.Timeout as e:
        raise HTTPTimeoutError(f"Request timed out: {url}") from e
    except requests.exceptions.ConnectionError as e:
        raise HTTPConnectionError(f"Connection failed: {url}") from e
    except requests.exceptions.HTTPError as e:
        raise HTTPRequestError(
            f"HTTP {e.response.status_code}: {url}",
            status_code=e.response.status_code,
            response_text=e.response.text[:500] if e.response.text else None,
        ) from e
    except requests.exceptions.RequestException as e:
        raise HTTPRequestError(f"Request failed: {url} ({type(e).__name__})") from e


def http_json_get(
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """
    GET request that returns parsed JSON.

    Raises:
        HTTPConnectionError: Connection failed
        HTTPTimeoutError: Request timed out
        HTTPRequestError: Bad status code or invalid JSON
    """
    response = http_request("GET", url, params=params, headers=headers, timeout=timeout)
    try:
        return response.json()
    except ValueError as e:
        raise HTTPRequestError(f"Invalid JSON response from {url}") from e


def http_json_post(
    url: str,
    json: Any,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """
    POST request with JSON body that returns parsed JSON.

    Raises:
        HTTPConnectionError: Connection failed
        HTTPTimeoutError: Request timed out
        HTTPRequestError: Bad status code or invalid JSON
    """
    response = http_request("POST", url, params=params, json=json, headers=headers, timeout=timeout)
    try:
        return response.json()
    except ValueError as e:
        raise HTTPRequestError(f"Invalid JSON response from {url}") from e
