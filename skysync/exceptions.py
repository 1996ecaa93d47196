"""
SkySync Exception Hierarchy

Centralized exception classes for structured error handling across the gateway.
All SkySync-specific exceptions inherit from SkySyncError.

Usage:
    from skysync.exceptions import SessionNotReady, TransportUnavailable

    try:
        result = await dispatcher.call_tool(name, arguments)
    except TransportUnavailable as e:
        logger.warning(f"Upstream not available: {e}")
"""


class SkySyncError(Exception):
    """Base exception for all SkySync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SkySyncError):
    """Error in SkySync configuration."""

    pass


class MissingConfigError(ConfigurationError):
    """Required configuration value is missing."""

    pass


# =============================================================================
# Session / Transport Errors
# =============================================================================


class TransportUnavailable(SkySyncError):
    """The MCP subprocess is not running or not ready. Callers may retry."""

    pass


class SessionNotReady(TransportUnavailable):
    """A call was issued while the session was not in the ready state."""

    pass


class SessionLost(TransportUnavailable):
    """The session left the ready state while a call was outstanding."""

    pass


class SessionBusy(TransportUnavailable):
    """Too many calls are already waiting for the session."""

    pass


class SessionStartError(SkySyncError):
    """The subprocess could not be launched or did not complete the handshake."""

    pass


class UpstreamError(SkySyncError):
    """The subprocess answered a request with a JSON-RPC error."""

    def __init__(self, message: str, code: int | None = None, data=None):
        details = {"code": code} if code is not None else {}
        super().__init__(message, details)
        self.code = code
        self.data = data


class UpstreamTimeout(SkySyncError):
    """The subprocess did not answer within the per-call timeout."""

    pass


# =============================================================================
# Request Errors
# =============================================================================


class InvalidRequest(SkySyncError):
    """Malformed caller input. Never retried."""

    pass


class MethodNotFound(SkySyncError):
    """JSON-RPC method is not supported by the gateway."""

    pass


class InternalError(SkySyncError):
    """Unexpected failure somewhere in the gateway pipeline."""

    pass


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(SkySyncError):
    """Base class for user/flight store errors."""

    pass


class UserNotFoundError(StorageError):
    """No user is registered under the given phone number."""

    pass


class DuplicateUserError(StorageError):
    """A user with the given phone number already exists."""

    pass


# =============================================================================
# HTTP/Client Errors
# =============================================================================


class ClientError(SkySyncError):
    """Base class for outbound HTTP client errors."""

    pass


class HTTPRequestError(ClientError):
    """HTTP request returned a bad status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        if response_text:
            details["response_text"] = response_text[:200]
        super().__init__(message, details)
        self.status_code = status_code
        self.response_text = response_text


class HTTPConnectionError(ClientError):
    """Failed to connect to HTTP endpoint."""

    pass


class HTTPTimeoutError(ClientError):
    """HTTP request timed out."""

    pass
