"""Explicitly owned monitor state, tied to the application lifecycle."""

import asyncio
import time

from sqlalchemy.ext.asyncio import AsyncEngine

from guardit.config import AppConfig, Settings
from guardit.core.database import build_engine, build_session_factory, create_schema, ping
from guardit.core.datetime_utils import is_valid_timezone
from guardit.core.logging import get_logger
from guardit.core.retry import RetryConfig
from guardit.monitor.alerting import AlertEngine
from guardit.monitor.broadcast import BroadcastHub
from guardit.monitor.cache import StatusCache
from guardit.monitor.ingestion import IngestionPipeline
from guardit.monitor.readiness import StoreReadiness
from guardit.stores.base import AlertStore, HistoryStore, KeywordTable, TaskRegistry
from guardit.stores.sql import SqlAlertStore, SqlHistoryStore, SqlKeywordTable, SqlTaskRegistry

logger = get_logger(__name__)


class MonitorRuntime:
    """
    Owns the status cache, the broadcast hub, the store readiness state and
    the pipeline wired on top of them.

    Stores default to the SQLAlchemy implementations; tests pass fakes.
    """

    def __init__(
        self,
        settings: Settings,
        config: AppConfig,
        *,
        engine: AsyncEngine | None = None,
        registry: TaskRegistry | None = None,
        history: HistoryStore | None = None,
        keywords: KeywordTable | None = None,
        alerts: AlertStore | None = None,
    ) -> None:
        self.settings = settings
        self.config = config
        if not is_valid_timezone(settings.display_timezone):
            logger.bind(timezone=settings.display_timezone).warning(
                "invalid_display_timezone_falling_back_to_utc"
            )
        self.engine = engine or build_engine(settings)
        self.session_factory = build_session_factory(self.engine)

        self.registry = registry or SqlTaskRegistry(self.session_factory)
        self.history = history or SqlHistoryStore(
            self.session_factory,
            success_statuses=config.metrics.success_statuses,
            failure_statuses=config.metrics.failure_statuses,
        )
        self.keywords = keywords or SqlKeywordTable(self.session_factory)
        self.alerts = alerts or SqlAlertStore(self.session_factory)

        self.cache = StatusCache()
        self.hub = BroadcastHub(self.cache)
        self.readiness = StoreReadiness()
        self.alert_engine = AlertEngine(
            self.keywords,
            self.alerts,
            self.hub,
            escalate_types=config.alerting.escalate_types,
            channel=config.alerting.notification_channel,
        )
        self.pipeline = IngestionPipeline(
            cache=self.cache,
            hub=self.hub,
            readiness=self.readiness,
            registry=self.registry,
            history=self.history,
            alert_engine=self.alert_engine,
            terminal_statuses=config.metrics.terminal_statuses,
            ready_wait_seconds=settings.store_ready_wait_seconds,
            display_timezone=settings.display_timezone,
        )

        self._started_at = time.monotonic()
        self._init_task: asyncio.Task | None = None

    @property
    def uptime(self) -> float:
        return time.monotonic() - self._started_at

    async def init_store(self) -> None:
        """Create the schema (or just check connectivity when migrations own it)."""
        if self.settings.auto_create_schema:
            await create_schema(self.engine)
        else:
            await ping(self.engine)

    def start(self) -> None:
        """Kick off store initialization in the background."""
        if self._init_task is not None:
            return
        retry = RetryConfig.for_store_init(self.settings)
        self._init_task = asyncio.create_task(
            self.readiness.initialize(self.init_store, retry=retry), name="store-init"
        )

    async def stop(self) -> None:
        self.hub.close_all()
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            try:
                await self._init_task
            except asyncio.CancelledError:
                pass
        await self.engine.dispose()
        logger.info("monitor_stopped")
