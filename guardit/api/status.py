"""Status ingestion and current-state endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from guardit.core.logging import get_logger
from guardit.core.rate_limit import ingest_rate_limit, limiter
from guardit.dependencies import Monitor
from guardit.monitor.errors import MonitorError
from guardit.monitor.events import clear_all_event, update_event
from guardit.schemas.status import IngestResponse, StatusReport

logger = get_logger(__name__)

router = APIRouter()


@router.post("/status/{task_id}", response_model=IngestResponse)
@limiter.limit(ingest_rate_limit)
async def report_status(
    request: Request,
    task_id: str,
    body: StatusReport,
    monitor: Monitor,
) -> IngestResponse:
    """
    Receive a status report from a backup job.

    404 for an unregistered task, 403 for an inactive one. Storage and
    alerting problems are logged but never fail the report.
    """
    try:
        result = await monitor.pipeline.ingest(
            task_id,
            status=body.status,
            message=body.message,
            progress=body.progress,
            payload=body.data,
        )
    except MonitorError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e

    return IngestResponse(success=True, stored=result.stored, alerts=len(result.alerts))


@router.get("/status")
async def list_statuses(monitor: Monitor) -> dict[str, Any]:
    """Current snapshot of every tracked task."""
    return {task_id: s.to_wire() for task_id, s in monitor.cache.get_all().items()}


@router.get("/status/{task_id}")
async def get_status(task_id: str, monitor: Monitor) -> dict[str, Any]:
    snapshot = monitor.cache.get(task_id)
    if snapshot is None:
        return {"status": "no_data"}
    return snapshot.to_wire()


@router.delete("/status/{task_id}")
async def clear_status(task_id: str, monitor: Monitor) -> dict[str, bool]:
    """Forget one task's snapshot and tell dashboards to drop it."""
    monitor.cache.remove(task_id)
    monitor.hub.publish(update_event(task_id, None))
    logger.bind(task_id=task_id).info("status_cleared")
    return {"success": True}


@router.delete("/status")
async def clear_all_statuses(monitor: Monitor) -> dict[str, bool]:
    monitor.cache.clear()
    monitor.hub.publish(clear_all_event())
    logger.info("status_cache_cleared")
    return {"success": True}


@router.get("/health")
async def health(monitor: Monitor) -> dict[str, Any]:
    """Detailed health: uptime, live dashboards, tracked tasks, store state."""
    return {
        "status": "ok",
        "uptime": round(monitor.uptime, 3),
        "connectedClients": monitor.hub.subscriber_count,
        "trackedServers": len(monitor.cache),
        "store": monitor.readiness.state.value,
    }
