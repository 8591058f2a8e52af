"""Idempotent event publishing.

`publish` is safe to call repeatedly for the same logical event: the first call
inserts the record, later calls observe `DuplicateEvent`, which callers treat
as a successful no-op.
"""

from __future__ import annotations

import logging

from workflow_service.event_store.tables import EventTable, RecordAlreadyExists
from workflow_service.events.base import Event, EventName
from workflow_service.events.builder import EventStoreEventBuilder
from workflow_service.result import Failure, FailureKind, Success, make_failure, make_success

_logger = logging.getLogger(__name__)


class EventStoreClient:
    def __init__(
        self,
        table: EventTable,
        *,
        builder: EventStoreEventBuilder | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._table = table
        self._builder = builder or EventStoreEventBuilder()
        self._logger = logger or _logger

    def publish(self, event: Event) -> Success[None] | Failure:
        log_ctx = "EventStoreClient.publish"

        validation = self._validate_input(event)
        if isinstance(validation, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(validation)})
            return validation

        try:
            self._table.put_if_absent(event.to_record())
        except RecordAlreadyExists as e:
            failure = make_failure(FailureKind.DUPLICATE_EVENT, e, False)
            self._logger.warning(
                f"{log_ctx} exit failure",
                extra={
                    "failure": str(failure),
                    "event_name": event.event_name.value,
                    "idempotency_key": event.idempotency_key,
                },
            )
            return failure
        except Exception as e:
            failure = make_failure(FailureKind.UNRECOGNIZED, e, True)
            self._logger.exception(
                f"{log_ctx} exit failure",
                extra={
                    "failure": str(failure),
                    "event_name": event.event_name.value,
                    "idempotency_key": event.idempotency_key,
                },
            )
            return failure

        self._logger.info(
            f"{log_ctx} exit success",
            extra={"event_name": event.event_name.value, "idempotency_key": event.idempotency_key},
        )
        return make_success()

    def read(self, event_name: EventName, idempotency_key: str) -> Success[Event] | Failure:
        """Load a previously published event, keeping its stored identity."""

        log_ctx = "EventStoreClient.read"
        try:
            record = self._table.get(event_name.value, idempotency_key)
        except Exception as e:
            failure = make_failure(FailureKind.UNRECOGNIZED, e, True)
            self._logger.exception(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        if record is None:
            failure = make_failure(
                FailureKind.NOT_FOUND,
                f"No {event_name.value} event with idempotency key {idempotency_key!r}",
                False,
            )
            self._logger.info(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        return self._builder.from_record(record)

    @staticmethod
    def _validate_input(event: object) -> Success[None] | Failure:
        if not isinstance(event, Event):
            return make_failure(
                FailureKind.INVALID_ARGUMENTS, f"Expected Event but got {event!r}", False
            )
        if event.event_data is None:
            return make_failure(
                FailureKind.INVALID_ARGUMENTS, "Expected Event.event_data but got None", False
            )
        return make_success()
