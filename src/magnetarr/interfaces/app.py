"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from magnetarr.domain.exceptions import InvalidMediaDescriptorError
from magnetarr.infrastructure.config import AppConfig
from magnetarr.interfaces.app_state import AppState
from magnetarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app — configuration ONLY, NO resource initialization.

    Resources (HTTP client, cache, engine) are created in lifespan().
    """
    app = FastAPI(
        title="Magnetarr",
        description="Torrent source discovery and stream resolution",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from magnetarr.interfaces.api.streams.router import router as streams_router

    app.include_router(streams_router, prefix="/api/v1")

    @app.exception_handler(InvalidMediaDescriptorError)
    async def invalid_media(
        request: Request, exc: InvalidMediaDescriptorError
    ) -> JSONResponse:
        log.warning("invalid_media_descriptor", path=request.url.path, error=str(exc))
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness probe — returns 200 as long as the process is running."""
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            status_code = getattr(locals().get("response", None), "status_code", 500)

            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
