"""Abstract interfaces for the durable collaborators of the monitor core.

The ingestion pipeline and alert engine only talk to these interfaces, so
tests can swap in in-memory fakes and production wires the SQLAlchemy
implementations from ``guardit.stores.sql``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime

from guardit.models.alert import AlertStatus
from guardit.schemas.records import (
    AlertInfo,
    DailyMetricInfo,
    KeywordRuleInfo,
    ServerInfo,
    StatusCount,
    StatusEventInfo,
    TaskInfo,
    TaskStats,
)
from guardit.schemas.status import StatusSnapshot


class TaskRegistry(ABC):
    """Durable record of known servers and backup tasks."""

    @abstractmethod
    async def get_task(self, task_id: str) -> TaskInfo | None:
        """Look up a task by id; None when it was never registered."""

    @abstractmethod
    async def touch_last_seen(self, task_id: str) -> None:
        """Stamp the task (and its server, if any) as seen now."""

    @abstractmethod
    async def register_task(
        self,
        task_id: str,
        display_name: str,
        task_type: str = "backup",
        description: str | None = None,
        server_id: str | None = None,
    ) -> TaskInfo:
        """Create an active task."""

    @abstractmethod
    async def set_active(self, task_id: str, is_active: bool) -> TaskInfo | None:
        """Toggle the active flag; None when the task does not exist."""

    @abstractmethod
    async def list_tasks(self) -> list[TaskInfo]:
        """All tasks, newest first."""

    @abstractmethod
    async def register_server(
        self,
        server_id: str,
        display_name: str | None = None,
        description: str | None = None,
    ) -> ServerInfo:
        """Create a server or refresh an existing one."""

    @abstractmethod
    async def get_server(self, server_id: str) -> ServerInfo | None:
        """Look up a server by id."""


class HistoryStore(ABC):
    """Append-only status log plus the daily aggregates derived from it."""

    @abstractmethod
    async def append(self, snapshot: StatusSnapshot) -> StatusEventInfo:
        """Persist one status event mirroring the snapshot."""

    @abstractmethod
    async def refresh_daily_metric(self, task_id: str, day: date) -> DailyMetricInfo:
        """Recompute the (task, day) aggregate from that day's events and upsert it."""

    @abstractmethod
    async def list_events(
        self, task_id: str, limit: int = 100, offset: int = 0
    ) -> list[StatusEventInfo]:
        """Events for a task, newest first."""

    @abstractmethod
    async def events_between(
        self, task_id: str, start: datetime, end: datetime, limit: int = 1000
    ) -> list[StatusEventInfo]:
        """Events with start <= timestamp < end, newest first."""

    @abstractmethod
    async def latest(self, task_id: str) -> StatusEventInfo | None:
        """Most recent persisted event for a task."""

    @abstractmethod
    async def today_summary(self, task_id: str) -> list[StatusCount]:
        """Per-status count and average progress for today's events."""

    @abstractmethod
    async def stats(self, task_id: str) -> TaskStats:
        """All-time counters for a task."""

    @abstractmethod
    async def metrics_between(
        self, task_id: str, start: date, end: date
    ) -> list[DailyMetricInfo]:
        """Daily aggregates with start <= day <= end, oldest first."""


class KeywordTable(ABC):
    """Keyword rules that turn status messages into alerts."""

    @abstractmethod
    async def list_active(self) -> list[KeywordRuleInfo]:
        """All rules whose active flag is set."""

    @abstractmethod
    async def add_keyword(self, keyword: str, alert_type: str, severity: int) -> KeywordRuleInfo:
        """Create a rule or update the type/severity of an existing keyword."""


class AlertStore(ABC):
    """Durable alert records."""

    @abstractmethod
    async def create(
        self, task_id: str, alert_type: str, keyword: str, message: str, severity: int
    ) -> AlertInfo:
        """Insert an active alert."""

    @abstractmethod
    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        task_id: str | None = None,
        limit: int = 100,
    ) -> list[AlertInfo]:
        """Alerts, newest first, optionally filtered."""

    @abstractmethod
    async def acknowledge(self, alert_id: int) -> AlertInfo | None:
        """active -> acknowledged; None when missing or not active."""

    @abstractmethod
    async def resolve(self, alert_id: int) -> AlertInfo | None:
        """active/acknowledged -> resolved; None when missing or already resolved."""
