"""
Pytest configuration and fixtures for GuardIT tests.

Provides:
- In-memory doubles for the durable stores (with failure injection)
- A monitor runtime wired on those doubles, and one on SQLite stores
- Test client for API testing
- Helpers for reading frames off a subscriber
"""

import asyncio
import itertools
import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from guardit.config import AppConfig, Settings
from guardit.core.datetime_utils import day_bounds, utc_now
from guardit.models.alert import AlertStatus
from guardit.monitor.broadcast import Subscriber
from guardit.monitor.runtime import MonitorRuntime
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

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
CONFIG_PATH = Path(__file__).parent.parent / "config.yml"


# Override settings for testing
class TestSettings(Settings):
    database_url: str = TEST_DATABASE_URL
    debug: bool = True
    config_path: str = str(CONFIG_PATH)
    store_ready_wait_seconds: float = 0.05
    store_init_attempts: int = 1
    store_init_backoff_seconds: float = 0.01
    sse_keepalive_seconds: float = 0.05


# ============================================================================
# In-memory store doubles
# ============================================================================


class _Failing:
    """Mixin: ``fail_on`` names methods that raise instead of running."""

    def __init__(self) -> None:
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} unavailable")


class InMemoryTaskRegistry(_Failing, TaskRegistry):
    def __init__(self) -> None:
        super().__init__()
        self.tasks: dict[str, TaskInfo] = {}
        self.servers: dict[str, ServerInfo] = {}
        self.touched: list[str] = []
        # Each pending gate blocks one get_task call until it is set
        self.gates: list[asyncio.Event] = []
        self.touch_gate: asyncio.Event | None = None

    def hold_next_lookup(self) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates.append(gate)
        return gate

    async def get_task(self, task_id: str) -> TaskInfo | None:
        if self.gates:
            await self.gates.pop(0).wait()
        self._check("get_task")
        return self.tasks.get(task_id)

    async def touch_last_seen(self, task_id: str) -> None:
        if self.touch_gate is not None:
            await self.touch_gate.wait()
        self._check("touch_last_seen")
        self.touched.append(task_id)
        if task_id in self.tasks:
            self.tasks[task_id] = self.tasks[task_id].model_copy(update={"last_seen": utc_now()})

    async def register_task(
        self,
        task_id: str,
        display_name: str,
        task_type: str = "backup",
        description: str | None = None,
        server_id: str | None = None,
    ) -> TaskInfo:
        task = TaskInfo(
            task_id=task_id,
            display_name=display_name,
            task_type=task_type,
            description=description,
            server_id=server_id,
        )
        self.tasks[task_id] = task
        return task

    async def set_active(self, task_id: str, is_active: bool) -> TaskInfo | None:
        if task_id not in self.tasks:
            return None
        self.tasks[task_id] = self.tasks[task_id].model_copy(update={"is_active": is_active})
        return self.tasks[task_id]

    async def list_tasks(self) -> list[TaskInfo]:
        return list(reversed(self.tasks.values()))

    async def register_server(
        self,
        server_id: str,
        display_name: str | None = None,
        description: str | None = None,
    ) -> ServerInfo:
        server = ServerInfo(
            server_id=server_id, display_name=display_name or server_id, description=description
        )
        self.servers[server_id] = server
        return server

    async def get_server(self, server_id: str) -> ServerInfo | None:
        return self.servers.get(server_id)


class InMemoryHistoryStore(_Failing, HistoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.events: list[StatusEventInfo] = []
        self.metrics: dict[tuple[str, date], DailyMetricInfo] = {}
        self._ids = itertools.count(1)

    async def append(self, snapshot: StatusSnapshot) -> StatusEventInfo:
        self._check("append")
        event = StatusEventInfo(
            id=next(self._ids),
            task_id=snapshot.task_id,
            status=snapshot.status,
            message=snapshot.message,
            progress=snapshot.progress,
            data=snapshot.data,
            timestamp=snapshot.timestamp,
            last_update=snapshot.last_update,
        )
        self.events.append(event)
        return event

    async def refresh_daily_metric(self, task_id: str, day: date) -> DailyMetricInfo:
        self._check("refresh_daily_metric")
        start, end = day_bounds(day)
        todays = [e for e in self.events if e.task_id == task_id and start <= e.timestamp < end]
        metric = DailyMetricInfo(
            task_id=task_id,
            day=day,
            total_runs=len(todays),
            successful_runs=sum(1 for e in todays if e.status == "completed"),
            failed_runs=sum(1 for e in todays if e.status in ("failed", "error")),
        )
        self.metrics[(task_id, day)] = metric
        return metric

    def _for(self, task_id: str) -> list[StatusEventInfo]:
        events = [e for e in self.events if e.task_id == task_id]
        return sorted(events, key=lambda e: (e.timestamp, e.id), reverse=True)

    async def list_events(
        self, task_id: str, limit: int = 100, offset: int = 0
    ) -> list[StatusEventInfo]:
        return self._for(task_id)[offset : offset + limit]

    async def events_between(
        self, task_id: str, start: datetime, end: datetime, limit: int = 1000
    ) -> list[StatusEventInfo]:
        return [e for e in self._for(task_id) if start <= e.timestamp < end][:limit]

    async def latest(self, task_id: str) -> StatusEventInfo | None:
        events = self._for(task_id)
        return events[0] if events else None

    async def today_summary(self, task_id: str) -> list[StatusCount]:
        start, end = day_bounds(utc_now().date())
        grouped: dict[str, list[int]] = {}
        for e in await self.events_between(task_id, start, end):
            grouped.setdefault(e.status, []).append(e.progress or 0)
        return [
            StatusCount(status=s, count=len(p), avg_progress=sum(p) / len(p))
            for s, p in sorted(grouped.items())
        ]

    async def stats(self, task_id: str) -> TaskStats:
        events = self._for(task_id)
        return TaskStats(
            total_events=len(events),
            completed=sum(1 for e in events if e.status == "completed"),
            failed=sum(1 for e in events if e.status in ("failed", "error")),
            running=sum(1 for e in events if e.status == "running"),
            warning=sum(1 for e in events if e.status == "warning"),
            first_event=events[-1].timestamp if events else None,
            last_event=events[0].timestamp if events else None,
        )

    async def metrics_between(
        self, task_id: str, start: date, end: date
    ) -> list[DailyMetricInfo]:
        return sorted(
            (m for (t, d), m in self.metrics.items() if t == task_id and start <= d <= end),
            key=lambda m: m.day,
        )


class InMemoryKeywordTable(_Failing, KeywordTable):
    def __init__(self) -> None:
        super().__init__()
        self.rules: list[KeywordRuleInfo] = []
        self._ids = itertools.count(1)

    async def list_active(self) -> list[KeywordRuleInfo]:
        self._check("list_active")
        return [r for r in self.rules if r.is_active]

    async def add_keyword(self, keyword: str, alert_type: str, severity: int) -> KeywordRuleInfo:
        for i, rule in enumerate(self.rules):
            if rule.keyword.lower() == keyword.lower():
                self.rules[i] = rule.model_copy(
                    update={"alert_type": alert_type, "severity": severity, "is_active": True}
                )
                return self.rules[i]
        rule = KeywordRuleInfo(
            id=next(self._ids), keyword=keyword, alert_type=alert_type, severity=severity
        )
        self.rules.append(rule)
        return rule


class InMemoryAlertStore(_Failing, AlertStore):
    def __init__(self) -> None:
        super().__init__()
        self.alerts: dict[int, AlertInfo] = {}
        self._ids = itertools.count(1)

    async def create(
        self, task_id: str, alert_type: str, keyword: str, message: str, severity: int
    ) -> AlertInfo:
        self._check("create")
        alert = AlertInfo(
            id=next(self._ids),
            task_id=task_id,
            alert_type=alert_type,
            keyword=keyword,
            message=message,
            severity=severity,
            status=AlertStatus.ACTIVE,
            created_at=utc_now(),
        )
        self.alerts[alert.id] = alert
        return alert

    async def list_alerts(
        self,
        status: AlertStatus | None = None,
        task_id: str | None = None,
        limit: int = 100,
    ) -> list[AlertInfo]:
        alerts = sorted(self.alerts.values(), key=lambda a: a.id, reverse=True)
        if status is not None:
            alerts = [a for a in alerts if a.status == status]
        if task_id:
            alerts = [a for a in alerts if a.task_id == task_id]
        return alerts[:limit]

    async def acknowledge(self, alert_id: int) -> AlertInfo | None:
        alert = self.alerts.get(alert_id)
        if alert is None or alert.status != AlertStatus.ACTIVE:
            return None
        self.alerts[alert_id] = alert.model_copy(
            update={"status": AlertStatus.ACKNOWLEDGED, "acknowledged_at": utc_now()}
        )
        return self.alerts[alert_id]

    async def resolve(self, alert_id: int) -> AlertInfo | None:
        alert = self.alerts.get(alert_id)
        if alert is None or alert.status == AlertStatus.RESOLVED:
            return None
        self.alerts[alert_id] = alert.model_copy(
            update={"status": AlertStatus.RESOLVED, "resolved_at": utc_now()}
        )
        return self.alerts[alert_id]


# ============================================================================
# Runtime and client fixtures
# ============================================================================


@pytest.fixture
def test_settings() -> TestSettings:
    return TestSettings()


@pytest.fixture
def app_config(test_settings: TestSettings) -> AppConfig:
    return AppConfig(test_settings)


@pytest.fixture
def registry() -> InMemoryTaskRegistry:
    return InMemoryTaskRegistry()


@pytest.fixture
def history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def keywords() -> InMemoryKeywordTable:
    return InMemoryKeywordTable()


@pytest.fixture
def alerts() -> InMemoryAlertStore:
    return InMemoryAlertStore()


@pytest_asyncio.fixture
async def runtime(
    test_settings, app_config, registry, history, keywords, alerts
) -> AsyncGenerator[MonitorRuntime, None]:
    """Monitor runtime on in-memory stores, with the store marked ready."""
    monitor = MonitorRuntime(
        test_settings,
        app_config,
        registry=registry,
        history=history,
        keywords=keywords,
        alerts=alerts,
    )
    monitor.readiness.mark_ready()
    yield monitor
    await monitor.stop()


@pytest_asyncio.fixture
async def pending_runtime(
    test_settings, app_config, registry, history, keywords, alerts
) -> AsyncGenerator[MonitorRuntime, None]:
    """Same in-memory runtime, but the store has not finished initializing."""
    monitor = MonitorRuntime(
        test_settings,
        app_config,
        registry=registry,
        history=history,
        keywords=keywords,
        alerts=alerts,
    )
    yield monitor
    await monitor.stop()


@pytest_asyncio.fixture
async def sql_runtime(test_settings, app_config) -> AsyncGenerator[MonitorRuntime, None]:
    """Monitor runtime on the SQLAlchemy stores over in-memory SQLite."""
    monitor = MonitorRuntime(test_settings, app_config)
    await monitor.readiness.initialize(monitor.init_store)
    yield monitor
    await monitor.stop()


@pytest_asyncio.fixture
async def client(
    runtime: MonitorRuntime, test_settings, app_config
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client around the in-memory runtime."""
    from guardit.core.rate_limit import limiter
    from guardit.main import create_app

    app = create_app(test_settings, app_config, runtime)

    # Reset rate limiter storage before each test
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def client_with_settings(runtime: MonitorRuntime, test_settings, app_config):
    """Open a client on an app built with some settings overridden."""
    from guardit.core.rate_limit import limiter
    from guardit.main import create_app

    @asynccontextmanager
    async def _open(**overrides: Any) -> AsyncGenerator[AsyncClient, None]:
        settings = test_settings.model_copy(update=overrides)
        app = create_app(settings, app_config, runtime)
        limiter.reset()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    return _open


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def task_factory(registry: InMemoryTaskRegistry):
    """Factory for registering tasks in the in-memory registry."""

    async def _create_task(
        task_id: str = "backup-db-01",
        display_name: str | None = None,
        is_active: bool = True,
    ) -> TaskInfo:
        task = await registry.register_task(task_id, display_name or f"Task {task_id}")
        if not is_active:
            task = await registry.set_active(task_id, False)
        return task

    return _create_task


def parse_frame(frame: str) -> dict[str, Any]:
    """Decode one ``data: {...}`` frame."""
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: ") :])


@pytest.fixture
def drain():
    """Reads every event currently queued for an open subscriber."""

    async def _drain(subscriber: Subscriber) -> list[dict[str, Any]]:
        events = []
        while subscriber.pending():
            frame = await subscriber.receive(timeout=1)
            events.append(parse_frame(frame))
        return events

    return _drain
