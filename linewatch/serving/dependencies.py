"""
Shared dependencies for API routes.

State accessors and helpers used across the route modules.
"""

from fastapi import HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from linewatch.config import settings
from linewatch.tracking.refresh import RefreshOrchestrator
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)

RELEASE_VERSION = settings.version

limiter = Limiter(key_func=get_remote_address)


def get_orchestrator(request: Request) -> RefreshOrchestrator:
    """Get the refresh orchestrator from app state."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Projection tracker not initialized")
    return orchestrator


def isoformat_or_none(value) -> str | None:
    return value.isoformat() if value is not None else None
