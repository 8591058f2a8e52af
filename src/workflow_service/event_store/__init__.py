"""Append-only event log with write-if-absent semantics."""

from workflow_service.event_store.client import EventStoreClient
from workflow_service.event_store.tables import (
    EventTable,
    FileEventTable,
    InMemoryEventTable,
    RecordAlreadyExists,
)

__all__ = [
    "EventStoreClient",
    "EventTable",
    "FileEventTable",
    "InMemoryEventTable",
    "RecordAlreadyExists",
]
