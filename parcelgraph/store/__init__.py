from .base import Record, RecordStore, TrackingStore
from .memory import InMemoryRecordStore
from .redis_store import RedisRecordStore

__all__ = [
    "InMemoryRecordStore",
    "Record",
    "RecordStore",
    "RedisRecordStore",
    "TrackingStore",
]
