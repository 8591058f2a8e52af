"""Publishing helper shared by the application services."""

from __future__ import annotations

import logging

from workflow_service.event_store.client import EventStoreClient
from workflow_service.events.base import EventDefinition
from workflow_service.result import (
    Failure,
    FailureKind,
    Success,
    is_failure_of_kind,
    make_success,
)


def publish_event(
    event_store: EventStoreClient,
    definition: EventDefinition,
    event_data: dict[str, object],
    logger: logging.Logger,
) -> Success[None] | Failure:
    """Build and publish an event; an already published event counts as success."""

    built = definition.from_data(event_data)
    if isinstance(built, Failure):
        return built

    published = event_store.publish(built.value)
    if is_failure_of_kind(published, FailureKind.DUPLICATE_EVENT):
        logger.info(
            f"{definition.label} already published",
            extra={"idempotency_key": built.value.idempotency_key},
        )
        return make_success()
    return published
