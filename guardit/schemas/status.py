from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from guardit.core.datetime_utils import to_iso_utc

DEFAULT_STATUS = "unknown"


class StatusReport(BaseModel):
    """Request body pushed by a backup job. Every field is optional."""

    status: str | None = None
    message: str | None = None
    progress: int | None = None
    data: Any = None


class StatusSnapshot(BaseModel):
    """Most recent status of a task as held in memory and sent to dashboards."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    status: str = DEFAULT_STATUS
    message: str = ""
    progress: int = 0
    data: Any = None
    timestamp: datetime
    last_update: str = Field(alias="lastUpdate")

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return to_iso_utc(value)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the camelCase names dashboards expect."""
        return self.model_dump(mode="json", by_alias=True)


class IngestResponse(BaseModel):
    """Response to a status report."""

    success: bool = True
    stored: bool
    alerts: int = 0
