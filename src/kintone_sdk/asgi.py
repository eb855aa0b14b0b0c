"""ASGI app serving the Kintone MCP tools over Streamable HTTP."""

from __future__ import annotations

import contextlib
import logging
import secrets
from collections.abc import AsyncIterator, Awaitable, Callable

from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import ASGIApp

from .mcp_server import create_mcp_server
from .settings import Settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
PUBLIC_PATHS = frozenset({"/health"})


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Reject every request but the public ones unless it presents ``MCP_API_KEY``."""

    def __init__(self, app: ASGIApp, *, settings: Settings) -> None:
        super().__init__(app)
        self._api_key = settings.mcp_api_key

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)
        presented = request.headers.get(API_KEY_HEADER, "")
        if not secrets.compare_digest(presented.encode(), self._api_key.encode()):
            logger.info("Rejected %s %s: missing or wrong API key", request.method, request.url.path)
            return JSONResponse({"error": "unauthorized"}, status_code=401)
        return await call_next(request)


async def health(_: Request) -> Response:
    return JSONResponse({"ok": True})


def create_app(settings: Settings | None = None) -> Starlette:
    settings = settings or Settings()
    if not settings.mcp_api_key:
        raise ValueError("MCP_API_KEY must be set to serve the MCP endpoint")
    mcp = create_mcp_server(settings)
    mcp_app = mcp.streamable_http_app()

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        async with mcp.session_manager.run():
            logger.info("Serving Kintone tools for %s", settings.credentials().base_url)
            yield

    app = Starlette(routes=[Route("/health", endpoint=health, methods=["GET"])], lifespan=lifespan)
    app.mount("/", mcp_app)
    app.add_middleware(ApiKeyMiddleware, settings=settings)
    return app
