"""
SkySync HTTP Gateway

FastAPI app exposing the MCP tool server through two surfaces:
- direct tool-path endpoints (GET /tools, POST /tools/{name}, GET /resources)
- JSON-RPC 2.0 endpoints (POST /tools, POST /mcp)

plus /health and the auxiliary /api endpoints.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from skysync.configs import GatewaySettings, get_logger, load_settings
from skysync.controllers.http.api import router as api_router
from skysync.controllers.http.deps import error_response
from skysync.controllers.http.mcp_protocol import router as mcp_router
from skysync.controllers.http.tools import router as tools_router
from skysync.exceptions import SkySyncError
from skysync.gateway import Dispatcher, JsonRpcHandler, error_message, http_status_for
from skysync.session import SessionClient
from skysync.storage import UserStore
from skysync.version import __version__, get_current_version

logger = get_logger("http")

# Track server startup time
_startup_time = datetime.now(timezone.utc).isoformat()


def get_startup_time() -> str:
    """Get the server startup time."""
    return _startup_time


def create_app(
    settings: Optional[GatewaySettings] = None,
    session: Optional[SessionClient] = None,
    store: Optional[UserStore] = None,
) -> FastAPI:
    """
    Build the gateway app around exactly one MCP session.

    The session connects during startup; a launch or handshake failure
    aborts startup. The session is closed (subprocess terminated) on
    shutdown.
    """
    settings = settings or load_settings()
    session = session or SessionClient(settings)
    store = store or UserStore(settings.supabase_url, settings.supabase_key)
    dispatcher = Dispatcher(session)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not session.ready:
            await session.connect()
        logger.info("MCP session ready")
        try:
            yield
        finally:
            await session.close()
            logger.info("MCP session closed")

    app = FastAPI(
        title="SkySync Gateway",
        description="HTTP and JSON-RPC gateway to the SkySync MCP tool server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session = session
    app.state.dispatcher = dispatcher
    app.state.jsonrpc = JsonRpcHandler(dispatcher)
    app.state.store = store

    @app.exception_handler(SkySyncError)
    async def gateway_error_handler(request: Request, exc: SkySyncError) -> JSONResponse:
        return error_response(exc)

    # Anything a route let escape still answers with an {error} body
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=http_status_for(exc), content={"error": error_message(exc)})

    # Include routers
    app.include_router(mcp_router, tags=["jsonrpc"])
    app.include_router(tools_router, tags=["tools"])
    app.include_router(api_router, tags=["api"])

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        """Health check with MCP session readiness."""
        status = request.app.state.dispatcher.health()
        status["startedAt"] = get_startup_time()
        status["version"] = get_current_version()["version"]
        return status

    return app


def run_server(settings: Optional[GatewaySettings] = None) -> None:
    """Run the gateway under uvicorn."""
    import uvicorn

    settings = settings or load_settings()
    logger.info(f"Starting HTTP gateway on {settings.host}:{settings.port}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level="warning")
