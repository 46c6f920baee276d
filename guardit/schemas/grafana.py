from typing import Any

from pydantic import BaseModel, Field


class GrafanaTarget(BaseModel):
    target: str
    refId: str | None = None


class GrafanaQuery(BaseModel):
    """Body of POST /grafana/query (extra Grafana fields are ignored)."""

    targets: list[GrafanaTarget] = Field(default_factory=list)
    range: dict[str, Any] | None = None


class GrafanaSearchItem(BaseModel):
    text: str
    value: str


class GrafanaSeries(BaseModel):
    target: str
    datapoints: list[list[int]]


class GrafanaAnnotation(BaseModel):
    annotation: str = "Backup Status"
    time: int
    title: str
    tags: list[str]
    text: str


class GrafanaColumn(BaseModel):
    text: str
    type: str


class GrafanaTable(BaseModel):
    columns: list[GrafanaColumn]
    rows: list[list[Any]]
    type: str = "table"
