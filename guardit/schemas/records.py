"""Read models returned by the durable stores."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from guardit.models.alert import AlertStatus


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ServerInfo(_Record):
    server_id: str
    display_name: str | None = None
    description: str | None = None
    is_active: bool = True
    last_seen: datetime | None = None


class TaskInfo(_Record):
    task_id: str
    display_name: str
    task_type: str = "backup"
    description: str | None = None
    server_id: str | None = None
    is_active: bool = True
    last_seen: datetime | None = None


class StatusEventInfo(_Record):
    id: int
    task_id: str
    status: str
    message: str | None = None
    progress: int | None = None
    data: Any = None
    timestamp: datetime
    last_update: str | None = None


class DailyMetricInfo(_Record):
    task_id: str
    day: date
    total_runs: int
    successful_runs: int
    failed_runs: int


class KeywordRuleInfo(_Record):
    id: int
    keyword: str
    alert_type: str
    severity: int
    is_active: bool = True


class AlertInfo(_Record):
    id: int
    task_id: str
    alert_type: str
    keyword: str
    message: str
    severity: int
    status: AlertStatus
    created_at: datetime
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None


class StatusCount(BaseModel):
    """Per-status slice of today's events for a task."""

    status: str
    count: int
    avg_progress: float | None = None


class TaskStats(BaseModel):
    """All-time event counts for a task."""

    total_events: int = 0
    completed: int = 0
    failed: int = 0
    running: int = 0
    warning: int = 0
    first_event: datetime | None = None
    last_event: datetime | None = None
