"""SQLAlchemy (async) implementations of the durable store interfaces.

Every public method opens its own short-lived session and commits before
returning, so a failure in one ingestion step never rolls back another.
"""

from collections.abc import Iterable
from datetime import date, datetime

from sqlalchemy import Date, DateTime, String, case, func, literal, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from guardit.core.datetime_utils import day_bounds, utc_now
from guardit.models.alert import Alert, AlertStatus, KeywordRule
from guardit.models.history import DailyMetric, StatusEvent
from guardit.models.registry import BackupTask, Server
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
from guardit.stores.base import AlertStore, HistoryStore, KeywordTable, TaskRegistry

SessionFactory = async_sessionmaker[AsyncSession]

# Reports may carry any status token; history keeps what fits the column
STATUS_COLUMN_LENGTH = StatusEvent.__table__.c.status.type.length


class SqlTaskRegistry(TaskRegistry):
    """Servers and backup tasks in the ``servers`` / ``backup_tasks`` tables."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def get_task(self, task_id: str) -> TaskInfo | None:
        async with self._session_factory() as session:
            task = await session.get(BackupTask, task_id)
            return TaskInfo.model_validate(task) if task else None

    async def touch_last_seen(self, task_id: str) -> None:
        now = utc_now()
        async with self._session_factory() as session:
            task = await session.get(BackupTask, task_id)
            if task is None:
                return
            task.last_seen = now
            if task.server_id:
                await session.execute(
                    update(Server).where(Server.server_id == task.server_id).values(last_seen=now)
                )
            await session.commit()

    async def register_task(
        self,
        task_id: str,
        display_name: str,
        task_type: str = "backup",
        description: str | None = None,
        server_id: str | None = None,
    ) -> TaskInfo:
        async with self._session_factory() as session:
            if server_id and await session.get(Server, server_id) is None:
                session.add(Server(server_id=server_id, display_name=server_id))
                await session.flush()

            task = BackupTask(
                task_id=task_id,
                display_name=display_name,
                task_type=task_type,
                description=description,
                server_id=server_id,
                is_active=True,
            )
            session.add(task)
            await session.commit()
            await session.refresh(task)
            return TaskInfo.model_validate(task)

    async def set_active(self, task_id: str, is_active: bool) -> TaskInfo | None:
        async with self._session_factory() as session:
            task = await session.get(BackupTask, task_id)
            if task is None:
                return None
            task.is_active = is_active
            await session.commit()
            await session.refresh(task)
            return TaskInfo.model_validate(task)

    async def list_tasks(self) -> list[TaskInfo]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BackupTask).order_by(BackupTask.created_at.desc())
            )
            return [TaskInfo.model_validate(t) for t in result.scalars().all()]

    async def register_server(
        self,
        server_id: str,
        display_name: str | None = None,
        description: str | None = None,
    ) -> ServerInfo:
        async with self._session_factory() as session:
            server = await session.get(Server, server_id)
            if server is None:
                server = Server(
                    server_id=server_id,
                    display_name=display_name or server_id,
                    description=description,
                )
                session.add(server)
            else:
                if display_name:
                    server.display_name = display_name
                if description:
                    server.description = description
                server.updated_at = utc_now()
            await session.commit()
            await session.refresh(server)
            return ServerInfo.model_validate(server)

    async def get_server(self, server_id: str) -> ServerInfo | None:
        async with self._session_factory() as session:
            server = await session.get(Server, server_id)
            return ServerInfo.model_validate(server) if server else None


class SqlHistoryStore(HistoryStore):
    """Status history in ``status_history`` and aggregates in ``daily_metrics``."""

    def __init__(
        self,
        session_factory: SessionFactory,
        success_statuses: Iterable[str] = ("completed",),
        failure_statuses: Iterable[str] = ("failed", "error"),
    ) -> None:
        self._session_factory = session_factory
        self._success = list(success_statuses)
        self._failure = list(failure_statuses)

    async def append(self, snapshot: StatusSnapshot) -> StatusEventInfo:
        async with self._session_factory() as session:
            event = StatusEvent(
                task_id=snapshot.task_id,
                status=snapshot.status[:STATUS_COLUMN_LENGTH],
                message=snapshot.message,
                progress=snapshot.progress,
                data=snapshot.data,
                timestamp=snapshot.timestamp,
                last_update=snapshot.last_update,
            )
            session.add(event)
            await session.commit()
            return StatusEventInfo.model_validate(event)

    async def refresh_daily_metric(self, task_id: str, day: date) -> DailyMetricInfo:
        start, end = day_bounds(day)
        counts = select(
            literal(task_id, String),
            literal(day, Date),
            func.count(StatusEvent.id),
            func.count(case((StatusEvent.status.in_(self._success), 1))),
            func.count(case((StatusEvent.status.in_(self._failure), 1))),
            literal(utc_now(), DateTime),
        ).where(
            StatusEvent.task_id == task_id,
            StatusEvent.timestamp >= start,
            StatusEvent.timestamp < end,
        )

        async with self._session_factory() as session:
            # Counting and the upsert share one statement and one view of the events
            insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
            table = DailyMetric.__table__
            stmt = insert(table).from_select(
                ["task_id", "date", "total_runs", "successful_runs", "failed_runs", "created_at"],
                counts,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["task_id", "date"],
                set_={
                    "total_runs": stmt.excluded.total_runs,
                    "successful_runs": stmt.excluded.successful_runs,
                    "failed_runs": stmt.excluded.failed_runs,
                    "created_at": stmt.excluded.created_at,
                },
            ).returning(table.c.total_runs, table.c.successful_runs, table.c.failed_runs)
            total, successful, failed = (await session.execute(stmt)).one()
            await session.commit()

        return DailyMetricInfo(
            task_id=task_id,
            day=day,
            total_runs=total,
            successful_runs=successful,
            failed_runs=failed,
        )

    async def list_events(
        self, task_id: str, limit: int = 100, offset: int = 0
    ) -> list[StatusEventInfo]:
        query = (
            select(StatusEvent)
            .where(StatusEvent.task_id == task_id)
            .order_by(StatusEvent.timestamp.desc(), StatusEvent.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return await self._events(query)

    async def events_between(
        self, task_id: str, start: datetime, end: datetime, limit: int = 1000
    ) -> list[StatusEventInfo]:
        query = (
            select(StatusEvent)
            .where(
                StatusEvent.task_id == task_id,
                StatusEvent.timestamp >= start,
                StatusEvent.timestamp < end,
            )
            .order_by(StatusEvent.timestamp.desc(), StatusEvent.id.desc())
            .limit(limit)
        )
        return await self._events(query)

    async def latest(self, task_id: str) -> StatusEventInfo | None:
        events = await self.list_events(task_id, limit=1)
        return events[0] if events else None

    async def today_summary(self, task_id: str) -> list[StatusCount]:
        start, end = day_bounds(utc_now().date())
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    StatusEvent.status,
                    func.count(StatusEvent.id),
                    func.avg(StatusEvent.progress),
                )
                .where(
                    StatusEvent.task_id == task_id,
                    StatusEvent.timestamp >= start,
                    StatusEvent.timestamp < end,
                )
                .group_by(StatusEvent.status)
                .order_by(StatusEvent.status)
            )
            return [
                StatusCount(
                    status=status,
                    count=count,
                    avg_progress=float(avg) if avg is not None else None,
                )
                for status, count, avg in result.all()
            ]

    async def stats(self, task_id: str) -> TaskStats:
        async with self._session_factory() as session:
            row = (
                await session.execute(
                    select(
                        func.count(StatusEvent.id),
                        func.count(case((StatusEvent.status == "completed", 1))),
                        func.count(case((StatusEvent.status.in_(["failed", "error"]), 1))),
                        func.count(case((StatusEvent.status == "running", 1))),
                        func.count(case((StatusEvent.status == "warning", 1))),
                        func.min(StatusEvent.timestamp),
                        func.max(StatusEvent.timestamp),
                    ).where(StatusEvent.task_id == task_id)
                )
            ).one()
        return TaskStats(
            total_events=row[0] or 0,
            completed=row[1] or 0,
            failed=row[2] or 0,
            running=row[3] or 0,
            warning=row[4] or 0,
            first_event=row[5],
            last_event=row[6],
        )

    async def metrics_between(
        self, task_id: str, start: date, end: date
    ) -> list[DailyMetricInfo]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DailyMetric)
                .where(
                    DailyMetric.task_id == task_id,
                    DailyMetric.day >= start,
                    DailyMetric.day <= end,
                )
                .order_by(DailyMetric.day.asc())
            )
            return [DailyMetricInfo.model_validate(m) for m in result.scalars().all()]

    async def _events(self, query) -> list[StatusEventInfo]:
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [StatusEventInfo.model_validate(e) for e in result.scalars().all()]


class SqlKeywordTable(KeywordTable):
    """Keyword rules in ``alert_keywords``."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def list_active(self) -> list[KeywordRuleInfo]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KeywordRule)
                .where(KeywordRule.is_active.is_(True))
                .order_by(KeywordRule.severity.desc(), KeywordRule.id.asc())
            )
            return [KeywordRuleInfo.model_validate(k) for k in result.scalars().all()]

    async def add_keyword(self, keyword: str, alert_type: str, severity: int) -> KeywordRuleInfo:
        keyword = keyword.strip()
        async with self._session_factory() as session:
            result = await session.execute(
                select(KeywordRule).where(func.lower(KeywordRule.keyword) == keyword.lower())
            )
            rule = result.scalar_one_or_none()
            if rule is None:
                rule = KeywordRule(keyword=keyword, alert_type=alert_type, severity=severity)
                session.add(rule)
            else:
                rule.alert_type = alert_type
                rule.severity = severity
                rule.is_active = True
            await session.commit()
            await session.refresh(rule)
            return KeywordRuleInfo.model_validate(rule)


class SqlAlertStore(AlertStore):
    """Alerts in the ``alerts`` table."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def create(
        self, task_id: str, alert_type: str, keyword: str, message: str, severity: int
    ) -> AlertInfo:
        async with self._session_factory() as session:
            alert = Alert(
                task_id=task_id,
                alert_type=alert_type,
                keyword=keyword,
                message=message,
                severity=severity,
                status=AlertStatus.ACTIVE,
                created_at=utc_now(),
                acknowledged_at=None,
                resolved_at=None,
            )
            session.add(alert)
            await session.commit()
            return AlertInfo.model_validate(alert)

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        task_id: str | None = None,
        limit: int = 100,
    ) -> list[AlertInfo]:
        query = select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc())
        if status is not None:
            query = query.where(Alert.status == status)
        if task_id:
            query = query.where(Alert.task_id == task_id)
        async with self._session_factory() as session:
            result = await session.execute(query.limit(limit))
            return [AlertInfo.model_validate(a) for a in result.scalars().all()]

    async def acknowledge(self, alert_id: int) -> AlertInfo | None:
        return await self._transition(
            alert_id, allowed=(AlertStatus.ACTIVE,), target=AlertStatus.ACKNOWLEDGED
        )

    async def resolve(self, alert_id: int) -> AlertInfo | None:
        return await self._transition(
            alert_id,
            allowed=(AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED),
            target=AlertStatus.RESOLVED,
        )

    async def _transition(
        self,
        alert_id: int,
        allowed: tuple[AlertStatus, ...],
        target: AlertStatus,
    ) -> AlertInfo | None:
        async with self._session_factory() as session:
            alert = await session.get(Alert, alert_id)
            if alert is None or alert.status not in allowed:
                return None
            alert.status = target
            if target == AlertStatus.ACKNOWLEDGED:
                alert.acknowledged_at = utc_now()
            else:
                alert.resolved_at = utc_now()
            await session.commit()
            return AlertInfo.model_validate(alert)
