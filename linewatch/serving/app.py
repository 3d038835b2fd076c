"""
FastAPI server for the projection line-movement tracker.

One RefreshOrchestrator per process lives on `app.state.orchestrator`; every
route reads the current board and movements from it. With
AUTO_REFRESH_SECONDS > 0 a background task refreshes on that interval.
"""
import asyncio
import time
import uuid
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from linewatch.config import settings
from linewatch.ingestion.projections import ProjectionsClient
from linewatch.monitoring.metrics import REQUEST_COUNT, REQUEST_DURATION
from linewatch.serving.dependencies import RELEASE_VERSION, limiter
from linewatch.serving.routes.health import router as health_router
from linewatch.serving.routes.projections import router as projections_router
from linewatch.tracking.refresh import RefreshOrchestrator
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 5.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: build the orchestrator (unless one was injected) and start the
    background refresh loop when configured.
    Shutdown: cancel the loop.
    """
    if getattr(app.state, "orchestrator", None) is None:
        client = ProjectionsClient()
        app.state.orchestrator = RefreshOrchestrator(client.fetch, breaker=client.breaker)
        logger.info(f"Projection tracker initialized against {settings.projections_api_url}")

    refresh_task: Optional[asyncio.Task] = None
    if settings.auto_refresh_seconds > 0:
        refresh_task = asyncio.create_task(
            app.state.orchestrator.run_forever(settings.auto_refresh_seconds)
        )

    yield

    if refresh_task is not None:
        refresh_task.cancel()
        with suppress(asyncio.CancelledError):
            await refresh_task
    logger.info(f"{RELEASE_VERSION} shutting down")


def create_app(orchestrator: Optional[RefreshOrchestrator] = None) -> FastAPI:
    """Build the application; tests inject an orchestrator with a fake fetcher."""
    app = FastAPI(
        title="Linewatch - NBA projection line movement",
        description="Partner projection board with line movement since the previous refresh.",
        version=RELEASE_VERSION,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    if not settings.allowed_origins:
        logger.warning("ALLOWED_ORIGINS not set - CORS will reject all cross-origin requests")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*", "X-API-Key"],
    )

    @app.middleware("http")
    async def observe_requests(request: Request, call_next):
        # Tag every request with an id and record count/latency per path
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        path = request.url.path
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        except Exception as e:
            logger.error(f"[{request_id}] {request.method} {path} failed: {e!r}")
            raise
        finally:
            elapsed = time.perf_counter() - started
            REQUEST_COUNT.labels(method=request.method, endpoint=path, status=status).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=path).observe(elapsed)
            if elapsed > SLOW_REQUEST_SECONDS:
                logger.warning(f"[{request_id}] Slow request: {request.method} {path} took {elapsed:.2f}s")
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(health_router)
    app.include_router(projections_router)
    return app


app = create_app()
