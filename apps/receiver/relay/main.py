"""Position relay FastAPI application entrypoint."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from . import __version__
from .api.positions import router as positions_router
from .api.stream import router as stream_router
from .core.engine import PositionEngine
from .errors import RelayError
from .util.logs import configure_logging
from .util.settings import RelaySettings

logger = logging.getLogger(__name__)


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown paths and known paths with the wrong method both read as 404.
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content={"error": "Not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


class StripTrailingSlashMiddleware:
    """Route `/latest/` and `/latest` alike instead of redirecting."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = scope["path"].rstrip("/") or "/"
            if path != scope["path"]:
                scope = dict(scope, path=path)
        await self.app(scope, receive, send)


def create_app(
    settings: Optional[RelaySettings] = None,
    engine: Optional[PositionEngine] = None,
) -> FastAPI:
    """Build an application around its own engine instance."""

    settings = settings or RelaySettings.from_env()
    engine = engine or PositionEngine(
        settings.history_size,
        subscriber_queue_size=settings.subscriber_queue_size,
    )

    app = FastAPI(title="Position Relay", version=__version__, redirect_slashes=False)
    app.state.settings = settings
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )
    app.add_middleware(StripTrailingSlashMiddleware)
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    app.include_router(positions_router)
    app.include_router(stream_router)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    @app.get("/health", response_class=PlainTextResponse)
    def healthcheck() -> str:
        """Basic health endpoint for liveness probes."""
        return "OK"

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = app.state.settings
    configure_logging(settings.log_level)
    logger.info("Position relay listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
