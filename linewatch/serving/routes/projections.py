"""
Projection board and line movement routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from linewatch.ingestion.projections import FetchFailure
from linewatch.serving.dependencies import get_orchestrator, isoformat_or_none, limiter, logger
from linewatch.serving.models.responses import (
    CacheClearedResponse,
    ProjectionsResponse,
    RefreshResponse,
)
from linewatch.tracking.models import NO_MOVEMENT
from linewatch.tracking.summary import filter_by_stat_type, stat_types, summarize_movements
from linewatch.utils.api_auth import require_internal_api_key

router = APIRouter(prefix="/projections", tags=["Projections"])


@router.get("", response_model=ProjectionsResponse)
@limiter.limit("120/minute")
async def list_projections(
    request: Request,
    stat_type: Optional[str] = Query(None, description="Stat display name, or 'all'"),
    refresh: bool = Query(True, description="Refresh first if the board is stale"),
):
    """
    Current board with each line's movement since the previous batch.

    A failed upstream fetch never fails this endpoint: the last good batch is
    served with the error attached and `retryable` set.
    """
    orchestrator = get_orchestrator(request)

    if refresh:
        try:
            await orchestrator.refresh()
        except FetchFailure as e:
            logger.warning(f"Serving last good projections batch after failed refresh: {e}")

    batch = orchestrator.projections
    movements = orchestrator.movements
    visible = filter_by_stat_type(batch, stat_type)

    projections = []
    for projection in visible:
        item = projection.to_dict()
        item["movement"] = movements.get(projection.id, NO_MOVEMENT).to_dict()
        projections.append(item)

    last_error = orchestrator.last_error
    return ProjectionsResponse(
        count=len(projections),
        projections=projections,
        summary=summarize_movements(movements, visible).to_dict(),
        stat_types=stat_types(batch),
        last_updated=isoformat_or_none(orchestrator.last_updated),
        stale=orchestrator.is_stale,
        last_error=last_error,
        retryable=last_error is not None,
    )


@router.get("/stat-types")
def list_stat_types(request: Request):
    orchestrator = get_orchestrator(request)
    return {"stat_types": stat_types(orchestrator.projections)}


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    dependencies=[Depends(require_internal_api_key)],
)
async def force_refresh(request: Request):
    """
    Manual refresh, bypassing the staleness window.

    Dropped (outcome `in_flight`) when a fetch is already running.
    """
    orchestrator = get_orchestrator(request)
    try:
        result = await orchestrator.refresh(force=True)
    except FetchFailure as e:
        raise HTTPException(
            status_code=502,
            detail={
                "error": str(e),
                "retryable": True,
                "last_updated": isoformat_or_none(orchestrator.last_updated),
            },
        )

    return RefreshResponse(
        outcome=result.outcome.value,
        batch_size=result.batch_size,
        last_updated=isoformat_or_none(result.last_updated),
        summary=summarize_movements(result.movements, orchestrator.projections).to_dict(),
    )


@router.delete(
    "/cache",
    response_model=CacheClearedResponse,
    dependencies=[Depends(require_internal_api_key)],
)
def clear_cache(request: Request):
    """Drop the comparison snapshot; the next refresh starts without prior data."""
    orchestrator = get_orchestrator(request)
    cleared = orchestrator.clear()
    return CacheClearedResponse(cleared=cleared, message="Cache cleared successfully")
