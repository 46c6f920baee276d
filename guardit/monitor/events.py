"""Builders for the JSON events pushed to dashboards.

Every event carries a ``type`` discriminator: ``connected``, ``initial``,
``update``, ``alert_notification`` or ``clear_all``.
"""

import json
from typing import Any

from guardit.schemas.status import StatusSnapshot


def encode_event(event: dict[str, Any]) -> str:
    """Serialize one event as a single-line JSON server-sent-event frame."""
    return f"data: {json.dumps(event, default=str)}\n\n"


def connected_event() -> dict[str, Any]:
    return {"type": "connected", "message": "SSE connection established"}


def initial_event(statuses: dict[str, StatusSnapshot]) -> dict[str, Any]:
    return {
        "type": "initial",
        "statuses": {task_id: s.to_wire() for task_id, s in statuses.items()},
    }


def update_event(task_id: str, snapshot: StatusSnapshot | None) -> dict[str, Any]:
    """Routine per-task update; a null status means the entry was removed."""
    return {
        "type": "update",
        "serverId": task_id,
        "taskId": task_id,
        "status": snapshot.to_wire() if snapshot else None,
    }


def clear_all_event() -> dict[str, Any]:
    return {"type": "clear_all"}


def alert_notification_event(
    channel: str,
    task_id: str,
    task_name: str,
    alert_type: str,
    message: str,
    severity: int,
    keyword: str,
    timestamp: str,
) -> dict[str, Any]:
    """Escalated alert, addressed to the alert channel instead of a task id."""
    return {
        "type": "alert_notification",
        "serverId": channel,
        "alert": {
            "taskId": task_id,
            "taskName": task_name,
            "alertType": alert_type,
            "message": message,
            "severity": severity,
            "keyword": keyword,
            "timestamp": timestamp,
        },
    }
