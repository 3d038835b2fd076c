"""
Pydantic models for API responses.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class MovementSummaryModel(BaseModel):
    total_moved: int
    up_count: int
    down_count: int
    headline: str
    moved_lines: List[Dict[str, Any]] = []


class ProjectionsResponse(BaseModel):
    """Current batch with per-projection movement."""

    success: bool = True
    count: int
    projections: List[Dict[str, Any]]
    summary: MovementSummaryModel
    stat_types: List[str]
    last_updated: Optional[str] = None
    stale: bool
    last_error: Optional[str] = None
    retryable: bool = False


class RefreshResponse(BaseModel):
    """Response for a manual refresh."""

    success: bool = True
    outcome: str
    batch_size: int
    last_updated: Optional[str] = None
    summary: MovementSummaryModel


class CacheClearedResponse(BaseModel):
    success: bool = True
    cleared: int
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    tracker_loaded: bool
    refresh: Optional[Dict[str, Any]] = None
    circuit_breaker: Dict[str, Any]
    timestamp: str
