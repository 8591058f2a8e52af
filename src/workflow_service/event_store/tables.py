"""Event table backends.

A table stores one `EventRecord` per `(eventName, idempotencyKey)` and offers a
single write primitive, `put_if_absent`, whose uniqueness check is atomic.
"""

from __future__ import annotations

import hashlib
import json
import os
import threading
import uuid
from pathlib import Path
from typing import Protocol

from workflow_service.events.base import EventRecord


class RecordAlreadyExists(Exception):
    """Raised by `put_if_absent` when the record key is already taken."""

    def __init__(self, event_name: str, idempotency_key: str) -> None:
        super().__init__(f"Event already exists: {event_name} {idempotency_key!r}")
        self.event_name = event_name
        self.idempotency_key = idempotency_key


class EventTable(Protocol):
    def put_if_absent(self, record: EventRecord) -> None: ...

    def get(self, event_name: str, idempotency_key: str) -> EventRecord | None: ...

    def list(self, event_name: str | None = None) -> list[EventRecord]: ...


class InMemoryEventTable:
    """Dict-backed table for tests and single-process use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], EventRecord] = {}

    def put_if_absent(self, record: EventRecord) -> None:
        key = (record.eventName, record.idempotencyKey)
        with self._lock:
            if key in self._records:
                raise RecordAlreadyExists(record.eventName, record.idempotencyKey)
            self._records[key] = record.model_copy(deep=True)

    def get(self, event_name: str, idempotency_key: str) -> EventRecord | None:
        with self._lock:
            record = self._records.get((event_name, idempotency_key))
            return record.model_copy(deep=True) if record is not None else None

    def list(self, event_name: str | None = None) -> list[EventRecord]:
        with self._lock:
            records = [
                r.model_copy(deep=True)
                for (name, _), r in self._records.items()
                if event_name is None or name == event_name
            ]
        return sorted(records, key=lambda r: r.createdAt)


class FileEventTable:
    """One JSON file per record under `<root>/<eventName>/`.

    The record is written to a private temp file and then hard-linked to its
    final name. `os.link` fails if the name exists, so concurrent writers in
    different processes race on the filesystem and exactly one wins.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def _record_path(self, event_name: str, idempotency_key: str) -> Path:
        digest = hashlib.sha256(idempotency_key.encode("utf-8")).hexdigest()
        return self._root / event_name / f"{digest}.json"

    def put_if_absent(self, record: EventRecord) -> None:
        path = self._record_path(record.eventName, record.idempotencyKey)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            raise RecordAlreadyExists(record.eventName, record.idempotencyKey)

        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        tmp.write_text(
            json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        try:
            os.link(tmp, path)
        except FileExistsError as e:
            raise RecordAlreadyExists(record.eventName, record.idempotencyKey) from e
        finally:
            tmp.unlink(missing_ok=True)

    def get(self, event_name: str, idempotency_key: str) -> EventRecord | None:
        path = self._record_path(event_name, idempotency_key)
        if not path.exists():
            return None
        return EventRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def list(self, event_name: str | None = None) -> list[EventRecord]:
        if not self._root.exists():
            return []
        pattern = f"{event_name}/*.json" if event_name is not None else "*/*.json"
        records = [
            EventRecord.model_validate_json(p.read_text(encoding="utf-8"))
            for p in self._root.glob(pattern)
        ]
        return sorted(records, key=lambda r: r.createdAt)
