"""In-memory map of task id to its most recent status snapshot."""

from guardit.schemas.status import StatusSnapshot


class StatusCache:
    """
    Process-wide current state, owned by the monitor runtime.

    Entries are fully replaced, never merged, and readers always get copies.
    ``set`` optionally takes the arrival sequence of the report that produced
    the snapshot; a snapshot older than the last one accepted for the same
    task is refused, so a slow ingestion can never overwrite a newer one.
    """

    def __init__(self) -> None:
        self._entries: dict[str, StatusSnapshot] = {}
        self._sequences: dict[str, int] = {}

    def get(self, task_id: str) -> StatusSnapshot | None:
        snapshot = self._entries.get(task_id)
        return snapshot.model_copy(deep=True) if snapshot else None

    def get_all(self) -> dict[str, StatusSnapshot]:
        return {task_id: s.model_copy(deep=True) for task_id, s in self._entries.items()}

    def set(self, task_id: str, snapshot: StatusSnapshot, sequence: int | None = None) -> bool:
        """Store a snapshot; returns False when it was refused as stale."""
        if sequence is not None:
            if sequence <= self._sequences.get(task_id, -1):
                return False
            self._sequences[task_id] = sequence
        self._entries[task_id] = snapshot.model_copy(deep=True)
        return True

    def current_sequence(self, task_id: str) -> int | None:
        """Arrival sequence of the cached entry, None when absent or unsequenced."""
        if task_id not in self._entries:
            return None
        return self._sequences.get(task_id)

    def remove(self, task_id: str) -> bool:
        return self._entries.pop(task_id, None) is not None

    def clear(self) -> None:
        # Sequences survive so late stale reports stay refused
        self._entries.clear()

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
