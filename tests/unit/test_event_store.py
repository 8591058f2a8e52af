"""Unit tests for idempotent publishing."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import Mock

import pytest

from workflow_service.event_store import (
    EventStoreClient,
    EventTable,
    FileEventTable,
    InMemoryEventTable,
    RecordAlreadyExists,
)
from workflow_service.events import (
    EventName,
    JobCreatedEvent,
    WorkflowAssistantsDeployedEvent,
    WorkflowStepProcessedEvent,
)
from workflow_service.result import Failure, FailureKind, Success, is_failure_of_kind


def _job_event(job_id: str = "job-000001"):
    result = JobCreatedEvent.from_data({"jobId": job_id, "created": True})
    assert isinstance(result, Success)
    return result.value


@pytest.fixture(params=["memory", "file"])
def table(request, tmp_path: Path) -> EventTable:
    if request.param == "memory":
        return InMemoryEventTable()
    return FileEventTable(tmp_path / "events")


def test_publish_twice_stores_one_record(table: EventTable) -> None:
    client = EventStoreClient(table)
    event = _job_event()

    first = client.publish(event)
    second = client.publish(event)

    assert first == Success(None)
    assert is_failure_of_kind(second, FailureKind.DUPLICATE_EVENT)
    assert isinstance(second, Failure)
    assert second.transient is False
    assert len(table.list()) == 1


def test_same_logical_event_built_twice_is_a_duplicate(table: EventTable) -> None:
    client = EventStoreClient(table)

    assert isinstance(client.publish(_job_event()), Success)
    # A second construction gets a new timestamp but the same key.
    assert is_failure_of_kind(client.publish(_job_event()), FailureKind.DUPLICATE_EVENT)


def test_uniqueness_is_scoped_by_event_name(table: EventTable) -> None:
    client = EventStoreClient(table)
    data = {"workflowId": "workflow-123", "objectKey": "workflow-123/snapshot.json"}
    deployed = WorkflowAssistantsDeployedEvent.from_data(data)
    processed = WorkflowStepProcessedEvent.from_data(data)
    assert isinstance(deployed, Success) and isinstance(processed, Success)

    assert isinstance(client.publish(deployed.value), Success)
    assert isinstance(client.publish(processed.value), Success)
    assert len(table.list()) == 2


def test_publish_rejects_non_events(table: EventTable) -> None:
    client = EventStoreClient(table)

    result = client.publish({"eventName": "JOB_CREATED_EVENT"})  # type: ignore[arg-type]

    assert is_failure_of_kind(result, FailureKind.INVALID_ARGUMENTS)
    assert table.list() == []


def test_backend_errors_are_transient() -> None:
    table = Mock(spec=InMemoryEventTable)
    table.put_if_absent.side_effect = OSError("disk full")
    client = EventStoreClient(table)

    result = client.publish(_job_event())

    assert is_failure_of_kind(result, FailureKind.UNRECOGNIZED)
    assert isinstance(result, Failure)
    assert result.transient is True


def test_read_returns_the_stored_event(table: EventTable) -> None:
    client = EventStoreClient(table)
    event = _job_event()
    client.publish(event)

    result = client.read(EventName.JOB_CREATED, event.idempotency_key)

    assert result == Success(event)


def test_read_missing_event_is_not_found(table: EventTable) -> None:
    result = EventStoreClient(table).read(EventName.JOB_CREATED, "jobId:nope:created:true")

    assert is_failure_of_kind(result, FailureKind.NOT_FOUND)


def test_file_table_concurrent_writers_single_winner(tmp_path: Path) -> None:
    table = FileEventTable(tmp_path / "events")
    record = _job_event().to_record()
    outcomes: list[str] = []
    lock = threading.Lock()

    def write() -> None:
        try:
            table.put_if_absent(record)
            outcome = "inserted"
        except RecordAlreadyExists:
            outcome = "duplicate"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=write) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("inserted") == 1
    assert outcomes.count("duplicate") == 7
    assert not list((tmp_path / "events").rglob("*.tmp"))


def test_file_table_lists_by_event_name(tmp_path: Path) -> None:
    table = FileEventTable(tmp_path / "events")
    client = EventStoreClient(table)
    client.publish(_job_event("job-000001"))
    client.publish(_job_event("job-000002"))

    assert len(table.list(EventName.JOB_CREATED.value)) == 2
    assert table.list(EventName.WORKFLOW_CREATED.value) == []
