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
from guardit.schemas.status import IngestResponse, StatusReport, StatusSnapshot

__all__ = [
    "AlertInfo",
    "DailyMetricInfo",
    "IngestResponse",
    "KeywordRuleInfo",
    "ServerInfo",
    "StatusCount",
    "StatusEventInfo",
    "StatusReport",
    "StatusSnapshot",
    "TaskInfo",
    "TaskStats",
]
