from taskboard.record_store.base import RecordStore, Task, User, init_store
from taskboard.record_store.in_memory import InMemoryRecordStore
from taskboard.record_store.sqlite import SQLiteRecordStore

__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "SQLiteRecordStore",
    "Task",
    "User",
    "init_store",
]
