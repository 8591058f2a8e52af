"""Rehydrate events from persisted records."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import ValidationError

from workflow_service.events.base import Event, EventDefinition, EventName, EventRecord
from workflow_service.events.definitions import EVENT_DEFINITIONS
from workflow_service.result import Failure, FailureKind, Success, make_failure

logger = logging.getLogger(__name__)


class EventStoreEventBuilder:
    """Turn a raw record (as read back from the event table) into an `Event`.

    Rehydration always goes through `reconstitute`, so a stored event keeps the
    idempotency key and timestamp it was written with.
    """

    def __init__(self, definitions: Mapping[EventName, EventDefinition] | None = None) -> None:
        self._definitions = dict(definitions if definitions is not None else EVENT_DEFINITIONS)

    def from_record(self, raw: object) -> Success[Event] | Failure:
        log_ctx = "EventStoreEventBuilder.from_record"

        try:
            record = (
                raw if isinstance(raw, EventRecord) else EventRecord.model_validate(raw)
            )
        except ValidationError as e:
            failure = make_failure(FailureKind.INVALID_ARGUMENTS, e, False)
            logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        try:
            definition = self._definitions[EventName(record.eventName)]
        except (ValueError, KeyError):
            failure = make_failure(
                FailureKind.INVALID_ARGUMENTS, f"Unknown event name {record.eventName!r}", False
            )
            logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        return definition.reconstitute(record.eventData, record.idempotencyKey, record.createdAt)
