"""Cache, error and analytics statistics."""

from fastapi import APIRouter, Depends, HTTPException

from api.auth import verify_api_key
from api.dependencies import get_orchestrator
from sprint_export.analytics import InMemoryAnalyticsRecorder
from sprint_export.orchestrator import ExportOrchestrator

router = APIRouter()


@router.get("/cache/stats")
async def cache_stats(orchestrator: ExportOrchestrator = Depends(get_orchestrator), _key=Depends(verify_api_key)):
    return {
        "stats": orchestrator.cache.get_stats(),
        "health": orchestrator.cache.is_healthy(),
    }


@router.delete("/cache")
async def clear_cache(orchestrator: ExportOrchestrator = Depends(get_orchestrator), _key=Depends(verify_api_key)):
    """Drop every cached export."""
    removed = len(orchestrator.cache)
    orchestrator.cache.clear()
    return {"cleared": removed}


@router.get("/errors/stats")
async def error_stats(orchestrator: ExportOrchestrator = Depends(get_orchestrator), _key=Depends(verify_api_key)):
    return orchestrator.classifier.get_error_statistics()


@router.get("/analytics/metrics")
async def analytics_metrics(
    time_range: str = "all",
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
    _key=Depends(verify_api_key),
):
    """Export counts, success rate and timing for a time window."""
    recorder = orchestrator.analytics
    if not isinstance(recorder, InMemoryAnalyticsRecorder):
        raise HTTPException(status_code=404, detail="Analytics are disabled")
    try:
        metrics = recorder.get_metrics(time_range)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"metrics": metrics, "health": recorder.get_system_health()}
