from guardit.monitor.alerting import AlertEngine
from guardit.monitor.broadcast import BroadcastHub, Subscriber
from guardit.monitor.cache import StatusCache
from guardit.monitor.ingestion import IngestionPipeline, IngestResult
from guardit.monitor.readiness import StoreReadiness, StoreState
from guardit.monitor.runtime import MonitorRuntime

__all__ = [
    "AlertEngine",
    "BroadcastHub",
    "IngestResult",
    "IngestionPipeline",
    "MonitorRuntime",
    "StatusCache",
    "StoreReadiness",
    "StoreState",
    "Subscriber",
]
