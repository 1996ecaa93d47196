"""
Request Dependencies

FastAPI dependencies resolving the shared objects stored on app.state.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from skysync.configs import get_logger
from skysync.gateway import Dispatcher, JsonRpcHandler, error_message, http_status_for
from skysync.storage import UserStore

logger = get_logger("http")


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_jsonrpc_handler(request: Request) -> JsonRpcHandler:
    return request.app.state.jsonrpc


def get_store(request: Request) -> UserStore:
    return request.app.state.store


def error_response(error: Exception) -> JSONResponse:
    """Translate any exception into the direct surface's {error} body."""
    status = http_status_for(error)
    if status >= 500 and status != 503:
        logger.error(f"Request failed: {error!r}")
    return JSONResponse(status_code=status, content={"error": error_message(error)})
