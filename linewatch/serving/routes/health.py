"""
Health and metrics routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from linewatch.serving.dependencies import RELEASE_VERSION, limiter
from linewatch.serving.models.responses import HealthResponse
from linewatch.utils.circuit_breaker import get_projections_api_breaker

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
@limiter.limit("100/minute")
def health(request: Request):
    """Service health, refresh state and upstream breaker state."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    breaker = getattr(orchestrator, "breaker", None) or get_projections_api_breaker()
    return HealthResponse(
        status="ok",
        version=RELEASE_VERSION,
        tracker_loaded=orchestrator is not None,
        refresh=orchestrator.status() if orchestrator is not None else None,
        circuit_breaker=breaker.get_stats(),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
