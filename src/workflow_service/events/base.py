"""Event values and the two ways of constructing them.

`EventDefinition.from_data` mints a new identity (idempotency key + creation
timestamp) for freshly validated data. `EventDefinition.reconstitute` rebuilds
an event that was already persisted and keeps the identity it was stored with.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, StringConstraints, ValidationError, field_validator

from workflow_service.result import Failure, FailureKind, Success, make_failure, make_success

logger = logging.getLogger(__name__)


class EventName(str, Enum):
    JOB_CREATED = "JOB_CREATED_EVENT"
    WORKFLOW_CREATED = "WORKFLOW_CREATED_EVENT"
    WORKFLOW_ASSISTANTS_DEPLOYED = "WORKFLOW_ASSISTANTS_DEPLOYED_EVENT"
    WORKFLOW_STEP_PROCESSED = "WORKFLOW_STEP_PROCESSED_EVENT"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED_EVENT"


def utc_iso_now() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""

    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Event:
    """An immutable, validated domain event.

    Only `EventDefinition` produces these; `event_name` is the tag consumers
    check to know which shape `event_data` has.
    """

    idempotency_key: str
    event_name: EventName
    event_data: dict[str, Any]
    created_at: str

    def to_record(self) -> EventRecord:
        return EventRecord(
            idempotencyKey=self.idempotency_key,
            eventName=self.event_name.value,
            eventData=dict(self.event_data),
            createdAt=self.created_at,
        )


class EventRecord(BaseModel):
    """On-store representation of an event."""

    idempotencyKey: str
    eventName: str
    eventData: dict[str, Any]
    createdAt: str


IdentityStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=6, strict=True)]


class _EventIdentity(BaseModel):
    idempotencyKey: IdentityStr
    createdAt: Annotated[str, StringConstraints(min_length=1, strict=True)]

    @field_validator("createdAt")
    @classmethod
    def _iso_datetime(cls, value: str) -> str:
        datetime.fromisoformat(value)
        return value


@dataclass(frozen=True, slots=True)
class EventDefinition:
    """Static contract of one event type.

    Attributes:
        event_name: Tag stamped on every event built from this definition.
        data_model: Pydantic model holding the field rules for `event_data`.
        derive_key: Builds the idempotency key from validated data. Must be pure.
    """

    event_name: EventName
    data_model: type[BaseModel]
    derive_key: Callable[[Any], str]

    @property
    def label(self) -> str:
        return "".join(part.capitalize() for part in self.event_name.value.split("_")[:-1]) + "Event"

    def _validate_data(self, raw: object) -> Success[BaseModel] | Failure:
        if not isinstance(raw, Mapping):
            return make_failure(
                FailureKind.INVALID_ARGUMENTS,
                f"Expected {self.label} data mapping but got {raw!r}",
                False,
            )
        try:
            return make_success(self.data_model.model_validate(dict(raw)))
        except ValidationError as e:
            return make_failure(FailureKind.INVALID_ARGUMENTS, e, False)

    def from_data(self, raw: object) -> Success[Event] | Failure:
        """Validate fresh data and mint a new event identity."""

        log_ctx = f"{self.label}.from_data"
        data_result = self._validate_data(raw)
        if isinstance(data_result, Failure):
            logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(data_result), "event_data": repr(raw)},
            )
            return data_result

        data = data_result.value
        event = Event(
            idempotency_key=self.derive_key(data),
            event_name=self.event_name,
            event_data=data.model_dump(mode="json"),
            created_at=utc_iso_now(),
        )
        logger.info(
            f"{log_ctx} exit success", extra={"idempotency_key": event.idempotency_key}
        )
        return make_success(event)

    def reconstitute(
        self, event_data: object, idempotency_key: object, created_at: object
    ) -> Success[Event] | Failure:
        """Rebuild a persisted event without recomputing its identity."""

        log_ctx = f"{self.label}.reconstitute"
        data_result = self._validate_data(event_data)
        if isinstance(data_result, Failure):
            logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(data_result), "event_data": repr(event_data)},
            )
            return data_result

        try:
            _EventIdentity.model_validate(
                {"idempotencyKey": idempotency_key, "createdAt": created_at}
            )
        except ValidationError as e:
            failure = make_failure(FailureKind.INVALID_ARGUMENTS, e, False)
            logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(failure), "idempotency_key": repr(idempotency_key)},
            )
            return failure

        event = Event(
            idempotency_key=str(idempotency_key),
            event_name=self.event_name,
            event_data=data_result.value.model_dump(mode="json"),
            created_at=str(created_at),
        )
        logger.info(f"{log_ctx} exit success", extra={"idempotency_key": idempotency_key})
        return make_success(event)
