"""Read access to persisted status history and daily metrics."""

from datetime import date, timedelta

from fastapi import APIRouter, Query

from guardit.core.datetime_utils import utc_now
from guardit.dependencies import ReadyMonitor
from guardit.schemas.records import DailyMetricInfo, StatusCount, StatusEventInfo, TaskStats

router = APIRouter()

DEFAULT_METRICS_WINDOW_DAYS = 30


@router.get("/tasks/{task_id}/history", response_model=list[StatusEventInfo])
async def get_history(
    task_id: str,
    monitor: ReadyMonitor,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> list[StatusEventInfo]:
    """Status events for a task, newest first."""
    return await monitor.history.list_events(task_id, limit=limit, offset=offset)


@router.get("/tasks/{task_id}/history/latest", response_model=StatusEventInfo | None)
async def get_latest(task_id: str, monitor: ReadyMonitor) -> StatusEventInfo | None:
    return await monitor.history.latest(task_id)


@router.get("/tasks/{task_id}/summary/today", response_model=list[StatusCount])
async def get_today_summary(task_id: str, monitor: ReadyMonitor) -> list[StatusCount]:
    """Count and average progress per status for today's events."""
    return await monitor.history.today_summary(task_id)


@router.get("/tasks/{task_id}/stats", response_model=TaskStats)
async def get_stats(task_id: str, monitor: ReadyMonitor) -> TaskStats:
    return await monitor.history.stats(task_id)


@router.get("/tasks/{task_id}/metrics", response_model=list[DailyMetricInfo])
async def get_metrics(
    task_id: str,
    monitor: ReadyMonitor,
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
) -> list[DailyMetricInfo]:
    """
    Daily aggregates for a task, oldest first.

    Defaults to the last 30 days ending today (UTC).
    """
    if end is None:
        end = utc_now().date()
    if start is None:
        start = end - timedelta(days=DEFAULT_METRICS_WINDOW_DAYS)
    return await monitor.history.metrics_between(task_id, start, end)
