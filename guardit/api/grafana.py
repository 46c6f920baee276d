"""
JSON datasource endpoints for Grafana dashboards.

Everything here reads the in-memory status cache only.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from guardit.core.datetime_utils import to_epoch_ms
from guardit.dependencies import Monitor
from guardit.schemas.grafana import (
    GrafanaAnnotation,
    GrafanaColumn,
    GrafanaQuery,
    GrafanaSearchItem,
    GrafanaSeries,
    GrafanaTable,
)

router = APIRouter()

STATUS_VALUES = {
    "completed": 100,
    "running": 50,
    "warning": 25,
    "failed": 0,
    "error": 0,
}
UNKNOWN_STATUS_VALUE = -1

ANNOTATED_STATUSES = frozenset({"completed", "failed", "error"})

TABLE_COLUMNS = [
    GrafanaColumn(text="Server", type="string"),
    GrafanaColumn(text="Status", type="string"),
    GrafanaColumn(text="Message", type="string"),
    GrafanaColumn(text="Progress", type="number"),
    GrafanaColumn(text="Last Update", type="time"),
]


def status_value(status: str) -> int:
    """Numeric gauge value for a status string."""
    return STATUS_VALUES.get(status, UNKNOWN_STATUS_VALUE)


@router.api_route("", methods=["GET", "POST"], response_class=PlainTextResponse)
async def datasource_check() -> str:
    """Connection test used by the datasource settings page."""
    return "OK"


@router.post("/search", response_model=list[GrafanaSearchItem])
async def search(monitor: Monitor) -> list[GrafanaSearchItem]:
    return [GrafanaSearchItem(text=task_id, value=task_id) for task_id in monitor.cache.get_all()]


@router.post("/metrics", response_model=list[GrafanaSearchItem])
async def metrics(monitor: Monitor) -> list[GrafanaSearchItem]:
    """Alias of /search for datasources that call it by this name."""
    return await search(monitor)


@router.post("/query", response_model=list[GrafanaSeries])
async def query(body: GrafanaQuery, monitor: Monitor) -> list[GrafanaSeries]:
    """
    One series per target: ``[[status_value, ts_ms], [progress, ts_ms]]``.

    Targets without a cached snapshot get empty datapoints.
    """
    series: list[GrafanaSeries] = []
    for target in body.targets:
        snapshot = monitor.cache.get(target.target)
        if snapshot is None:
            series.append(GrafanaSeries(target=target.target, datapoints=[]))
            continue
        ts = to_epoch_ms(snapshot.timestamp)
        series.append(
            GrafanaSeries(
                target=target.target,
                datapoints=[[status_value(snapshot.status), ts], [snapshot.progress or 0, ts]],
            )
        )
    return series


@router.post("/annotations", response_model=list[GrafanaAnnotation])
async def annotations(monitor: Monitor) -> list[GrafanaAnnotation]:
    """Mark every task whose latest status is terminal."""
    return [
        GrafanaAnnotation(
            time=to_epoch_ms(snapshot.timestamp),
            title=task_id,
            tags=[snapshot.status],
            text=snapshot.message,
        )
        for task_id, snapshot in monitor.cache.get_all().items()
        if snapshot.status in ANNOTATED_STATUSES
    ]


@router.post("/table", response_model=list[GrafanaTable])
async def table(monitor: Monitor) -> list[GrafanaTable]:
    rows = [
        [
            task_id,
            snapshot.status,
            snapshot.message or "",
            snapshot.progress or 0,
            to_epoch_ms(snapshot.timestamp),
        ]
        for task_id, snapshot in monitor.cache.get_all().items()
    ]
    return [GrafanaTable(columns=TABLE_COLUMNS, rows=rows)]
