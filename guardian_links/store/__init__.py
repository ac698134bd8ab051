"""Record store contract and its SQL implementation."""

from .client import RecordPage, RecordStore, StoreError
from .sql_store import SqlRecordStore

__all__ = ["RecordPage", "RecordStore", "SqlRecordStore", "StoreError"]
