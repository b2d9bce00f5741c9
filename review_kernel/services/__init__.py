"""Kernel services: record stores."""

from review_kernel.services.record_store import (
    InMemoryRecordStore,
    RecordStore,
    changed_fields,
    format_request_code,
)
from review_kernel.services.sql_record_store import SqlRecordStore

__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "SqlRecordStore",
    "changed_fields",
    "format_request_code",
]
