"""
HTTP endpoints for the local hook server.

Agent plugins on the same machine POST JSON to these endpoints:

    POST /reload          -> "OK"
    POST /send-files      {projectName, agentType?, instanceId?, files: [...]}
    POST /opencode-event  {projectName, agentType?, instanceId?, type?, text?, ...}

Bodies are plain text status literals so shell hooks can log them directly.
The server binds to loopback only and does not authenticate callers.
"""

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .bridge.dispatcher import EventDispatcher, HookResponse
from .log_config import get_logger

APP_NAME = "mudcode bridge"

log = get_logger("web_api")

HookHandler = Callable[[bytes], Awaitable[HookResponse]]


async def _run_hook(request: Request, endpoint_name: str, handler: HookHandler) -> PlainTextResponse:
    """Run a dispatcher handler and emit one ``http.request`` wide event."""
    start_time = time.time()
    http_status = 500
    outcome = "error"

    try:
        result = await handler(await request.body())
        http_status = result.status_code
        outcome = "success" if http_status < 400 else "rejected"
        return PlainTextResponse(result.message, status_code=result.status_code)
    finally:
        duration_ms = int((time.time() - start_time) * 1000)
        log.info(
            "http.request",
            http_method=request.method,
            http_path=request.url.path,
            http_status=http_status,
            duration_ms=duration_ms,
            outcome=outcome,
            endpoint_name=endpoint_name,
        )


def create_app(
    dispatcher: EventDispatcher,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    """Create the FastAPI application around ``dispatcher``.

    ``on_shutdown`` runs in the lifespan exit, after the server has stopped
    accepting requests and drained the open ones.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if on_shutdown is not None:
            await on_shutdown()

    app = FastAPI(
        title=APP_NAME,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    @app.post("/reload")
    async def reload(request: Request) -> PlainTextResponse:
        return await _run_hook(request, "reload", dispatcher.handle_reload)

    @app.post("/send-files")
    async def send_files(request: Request) -> PlainTextResponse:
        return await _run_hook(request, "send_files", dispatcher.handle_send_files)

    @app.post("/opencode-event")
    async def opencode_event(request: Request) -> PlainTextResponse:
        return await _run_hook(request, "opencode_event", dispatcher.handle_opencode_event)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        if exc.status_code == 404:
            return PlainTextResponse("Not found", status_code=404)
        if exc.status_code == 405:
            return PlainTextResponse("Method not allowed", status_code=405)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> PlainTextResponse:
        log.error("api.error", exc=exc, http_path=request.url.path)
        return PlainTextResponse("Internal error", status_code=500)

    return app
