from guardit.stores.base import AlertStore, HistoryStore, KeywordTable, TaskRegistry

__all__ = ["AlertStore", "HistoryStore", "KeywordTable", "TaskRegistry"]
