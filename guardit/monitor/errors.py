"""Error taxonomy for status ingestion.

``UnregisteredTask`` and ``InactiveTask`` reject a report before anything is
mutated. ``ValidationError`` means the registry lookup itself failed.
The two warning types never propagate: they are logged and collected on the
ingestion result.
"""


class MonitorError(Exception):
    """Base class for ingestion failures surfaced to the reporter."""

    status_code: int = 500

    def __init__(self, task_id: str, detail: str) -> None:
        super().__init__(detail)
        self.task_id = task_id
        self.detail = detail


class UnregisteredTask(MonitorError):
    status_code = 404

    def __init__(self, task_id: str) -> None:
        super().__init__(task_id, f"Task {task_id} is not registered")


class InactiveTask(MonitorError):
    status_code = 403

    def __init__(self, task_id: str) -> None:
        super().__init__(task_id, f"Task {task_id} is inactive")


class ValidationError(MonitorError):
    status_code = 500

    def __init__(self, task_id: str, cause: Exception) -> None:
        super().__init__(task_id, f"Could not validate task {task_id}")
        self.__cause__ = cause


class IngestWarning(Exception):
    """A best-effort step failed; ingestion carried on."""

    category = "warning"

    def __init__(self, step: str, cause: Exception) -> None:
        super().__init__(f"{step}: {cause}")
        self.step = step
        self.cause = cause


class PersistenceWarning(IngestWarning):
    category = "persistence"


class AlertingWarning(IngestWarning):
    category = "alerting"
