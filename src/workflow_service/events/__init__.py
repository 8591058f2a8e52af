"""Domain events.

Each event type is an `EventDefinition`: a name, a pydantic model for the data
rules, and a pure function deriving the idempotency key.
"""

from workflow_service.events.base import Event, EventDefinition, EventName, EventRecord
from workflow_service.events.builder import EventStoreEventBuilder
from workflow_service.events.definitions import (
    EVENT_DEFINITIONS,
    JobCreatedEvent,
    WorkflowAssistantsDeployedEvent,
    WorkflowCompletedEvent,
    WorkflowCreatedEvent,
    WorkflowStepProcessedEvent,
)

__all__ = [
    "EVENT_DEFINITIONS",
    "Event",
    "EventDefinition",
    "EventName",
    "EventRecord",
    "EventStoreEventBuilder",
    "JobCreatedEvent",
    "WorkflowAssistantsDeployedEvent",
    "WorkflowCompletedEvent",
    "WorkflowCreatedEvent",
    "WorkflowStepProcessedEvent",
]
