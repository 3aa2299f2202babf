"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from musicmu.infrastructure.config import AppConfig
from musicmu.interfaces.app_state import AppState
from musicmu.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration only, no resource initialization.

    Resources (HTTP client, resolver, queues) are created in lifespan().
    """
    app = FastAPI(
        title="MusicMu",
        description="Adaptive audio stream resolution for YouTube content",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors_origin],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Content-Length",
            "Content-Range",
            "Accept-Ranges",
            "X-Request-Id",
        ],
    )

    from musicmu.interfaces.api.search.router import router as search_router
    from musicmu.interfaces.api.stats.router import router as stats_router
    from musicmu.interfaces.api.track.router import router as track_router

    app.include_router(track_router, prefix="/api")
    app.include_router(search_router, prefix="/api")
    app.include_router(stats_router, prefix="/api")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check: returns 200 as long as the process is running."""
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": config.app_name,
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        structlog.contextvars.clear_contextvars()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
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
