from guardit.models.alert import Alert, AlertStatus, KeywordRule
from guardit.models.base import Base
from guardit.models.history import DailyMetric, StatusEvent
from guardit.models.registry import BackupTask, Server

__all__ = [
    "Base",
    "Server",
    "BackupTask",
    "StatusEvent",
    "DailyMetric",
    "KeywordRule",
    "Alert",
    "AlertStatus",
]
