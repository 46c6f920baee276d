"""Alert listing and lifecycle endpoints."""

from fastapi import APIRouter, HTTPException, Query, status

from guardit.core.logging import get_logger
from guardit.dependencies import ReadyMonitor
from guardit.models.alert import AlertStatus
from guardit.schemas.records import AlertInfo

logger = get_logger(__name__)

router = APIRouter()


@router.get("/alerts", response_model=list[AlertInfo])
async def list_alerts(
    monitor: ReadyMonitor,
    alert_status: AlertStatus | None = Query(default=None, alias="status"),
    task_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
) -> list[AlertInfo]:
    """Alerts, newest first, optionally filtered by status or task."""
    return await monitor.alerts.list_alerts(status=alert_status, task_id=task_id, limit=limit)


@router.post("/alerts/{alert_id}/acknowledge", response_model=AlertInfo)
async def acknowledge_alert(alert_id: int, monitor: ReadyMonitor) -> AlertInfo:
    alert = await monitor.alerts.acknowledge(alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found or not active",
        )
    logger.bind(alert_id=alert_id, task_id=alert.task_id).info("alert_acknowledged")
    return alert


@router.post("/alerts/{alert_id}/resolve", response_model=AlertInfo)
async def resolve_alert(alert_id: int, monitor: ReadyMonitor) -> AlertInfo:
    alert = await monitor.alerts.resolve(alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found or already resolved",
        )
    logger.bind(alert_id=alert_id, task_id=alert.task_id).info("alert_resolved")
    return alert
