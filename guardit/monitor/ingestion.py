"""Status ingestion: validate, cache, persist, aggregate, alert, broadcast."""

import itertools
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from guardit.core.datetime_utils import format_local, utc_now
from guardit.core.logging import get_logger
from guardit.monitor.alerting import AlertEngine
from guardit.monitor.broadcast import BroadcastHub
from guardit.monitor.cache import StatusCache
from guardit.monitor.errors import (
    AlertingWarning,
    InactiveTask,
    IngestWarning,
    PersistenceWarning,
    UnregisteredTask,
    ValidationError,
)
from guardit.monitor.events import update_event
from guardit.monitor.readiness import StoreReadiness
from guardit.schemas.records import AlertInfo, DailyMetricInfo, StatusEventInfo, TaskInfo
from guardit.schemas.status import DEFAULT_STATUS, StatusSnapshot
from guardit.stores.base import HistoryStore, TaskRegistry

logger = get_logger(__name__)


@dataclass
class IngestResult:
    """Outcome of one accepted report."""

    task_id: str
    snapshot: StatusSnapshot
    sequence: int
    stored: bool
    applied: bool
    event: StatusEventInfo | None = None
    metric: DailyMetricInfo | None = None
    alerts: list[AlertInfo] = field(default_factory=list)
    warnings: list[IngestWarning] = field(default_factory=list)


class IngestionPipeline:
    """
    Single entry point for status reports.

    Runs on the event loop only. Each call takes an arrival sequence number
    before its first await; the cache refuses any snapshot older than the one
    it holds, and only the current snapshot is broadcast, so the newest
    arrival always wins regardless of how long its store calls take.
    """

    def __init__(
        self,
        cache: StatusCache,
        hub: BroadcastHub,
        readiness: StoreReadiness,
        registry: TaskRegistry,
        history: HistoryStore,
        alert_engine: AlertEngine,
        terminal_statuses: Iterable[str] = ("completed", "failed", "error"),
        ready_wait_seconds: float = 0.0,
        display_timezone: str = "UTC",
    ) -> None:
        self._cache = cache
        self._hub = hub
        self._readiness = readiness
        self._registry = registry
        self._history = history
        self._alert_engine = alert_engine
        self._terminal = {s.lower() for s in terminal_statuses}
        self._ready_wait = ready_wait_seconds
        self._timezone = display_timezone
        self._arrivals = itertools.count(1)

    async def ingest(
        self,
        task_id: str,
        status: str | None = None,
        message: str | None = None,
        progress: int | None = None,
        payload: Any = None,
    ) -> IngestResult:
        """
        Ingest one report.

        Raises:
            UnregisteredTask: store ready and the task id is unknown
            InactiveTask: store ready and the task is deactivated
            ValidationError: the registry lookup itself failed
        """
        sequence = next(self._arrivals)
        store_ready = await self._readiness.wait_ready(self._ready_wait)

        task: TaskInfo | None = None
        if store_ready:
            task = await self._authorize(task_id)

        snapshot = self._build_snapshot(task_id, status, message, progress, payload)
        applied = self._cache.set(task_id, snapshot, sequence=sequence)
        result = IngestResult(
            task_id=task_id,
            snapshot=snapshot,
            sequence=sequence,
            stored=store_ready,
            applied=applied,
        )

        # Last-seen is bookkeeping; the live snapshot never waits on it
        if store_ready:
            try:
                await self._registry.touch_last_seen(task_id)
            except Exception as e:
                warning = PersistenceWarning("touch_last_seen", e)
                result.warnings.append(self._warn(warning, task_id))

        logger.bind(
            task_id=task_id,
            status=snapshot.status,
            message=snapshot.message,
            progress=snapshot.progress,
            stored=store_ready,
        ).info("status_ingested")

        if store_ready:
            await self._persist(result)
            if snapshot.message:
                try:
                    result.alerts = await self._alert_engine.detect_and_alert(
                        task_id,
                        snapshot.message,
                        task_name=task.display_name if task else None,
                    )
                except Exception as e:
                    warning = AlertingWarning("keyword_alerting", e)
                    result.warnings.append(self._warn(warning, task_id))

        if self._cache.current_sequence(task_id) == sequence:
            self._hub.publish(update_event(task_id, snapshot))
        else:
            logger.bind(task_id=task_id, sequence=sequence).debug("stale_update_not_broadcast")

        return result

    async def _authorize(self, task_id: str) -> TaskInfo:
        try:
            task = await self._registry.get_task(task_id)
        except Exception as e:
            logger.bind(task_id=task_id, error=str(e)).error("task_validation_failed")
            raise ValidationError(task_id, e) from e

        if task is None:
            logger.bind(task_id=task_id).warning("status_rejected_unregistered_task")
            raise UnregisteredTask(task_id)
        if not task.is_active:
            logger.bind(task_id=task_id).warning("status_rejected_inactive_task")
            raise InactiveTask(task_id)
        return task

    async def _persist(self, result: IngestResult) -> None:
        snapshot = result.snapshot
        try:
            result.event = await self._history.append(snapshot)
        except Exception as e:
            warning = PersistenceWarning("history_append", e)
            result.warnings.append(self._warn(warning, result.task_id))

        if snapshot.status.lower() in self._terminal:
            try:
                result.metric = await self._history.refresh_daily_metric(
                    result.task_id, snapshot.timestamp.date()
                )
            except Exception as e:
                result.warnings.append(
                    self._warn(PersistenceWarning("daily_metric_refresh", e), result.task_id)
                )

    def _build_snapshot(
        self,
        task_id: str,
        status: str | None,
        message: str | None,
        progress: int | None,
        payload: Any,
    ) -> StatusSnapshot:
        now = utc_now()
        return StatusSnapshot(
            task_id=task_id,
            status=status or DEFAULT_STATUS,
            message=message or "",
            progress=progress or 0,
            data=payload,
            timestamp=now,
            last_update=format_local(now, self._timezone),
        )

    @staticmethod
    def _warn(warning: IngestWarning, task_id: str) -> IngestWarning:
        logger.bind(
            task_id=task_id,
            category=warning.category,
            step=warning.step,
            error=str(warning.cause),
        ).warning("ingest_step_failed")
        return warning
