"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from animarr import __version__
from animarr.infrastructure.config import AppConfig
from animarr.interfaces.app_state import AppState
from animarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration only, no resource initialization.

    Resources (HTTP client, cache, providers) are created in lifespan().
    """
    app = FastAPI(
        title="animarr",
        description="Anime streaming source aggregator and delivery proxy",
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from animarr.interfaces.api.catalog.router import router as catalog_router
    from animarr.interfaces.api.home.router import router as home_router
    from animarr.interfaces.api.streaming.router import router as streaming_router
    from animarr.interfaces.api.video.router import router as video_router
    from animarr.interfaces.api.webhook.router import router as webhook_router

    app.include_router(catalog_router)
    app.include_router(home_router)
    app.include_router(streaming_router)
    app.include_router(video_router)
    app.include_router(webhook_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str | list[str]]:
        """Liveness check: 200 as long as the process is running."""
        state = app.state
        providers = getattr(state, "providers", None)
        extractors = getattr(state, "extractors", None)
        return {
            "status": "ok",
            "providers": providers.list_names() if providers else [],
            "extractors": extractors.names if extractors else [],
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
