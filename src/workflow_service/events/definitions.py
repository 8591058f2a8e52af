"""Concrete event shapes of the workflow and job domains."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, StringConstraints, field_validator

from workflow_service.events.base import EventDefinition, EventName

IdentifierStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=6, strict=True)]
RoundCount = Annotated[int, Field(strict=True, ge=1, le=10)]


class JobCreatedEventData(BaseModel):
    jobId: IdentifierStr
    created: Literal[True]

    @field_validator("created", mode="before")
    @classmethod
    def _literally_true(cls, value: object) -> object:
        # Must be literally `true`, not any truthy value.
        if value is not True:
            raise ValueError("created must be literally true")
        return value


class WorkflowCreatedEventData(BaseModel):
    workflowId: IdentifierStr
    objectKey: IdentifierStr
    promptEnhanceRounds: RoundCount
    responseEnhanceRounds: RoundCount


class WorkflowSnapshotEventData(BaseModel):
    """Points at the snapshot a workflow event was emitted for."""

    workflowId: IdentifierStr
    objectKey: IdentifierStr


def _job_created_key(data: JobCreatedEventData) -> str:
    return f"jobId:{data.jobId}:created:{str(data.created).lower()}"


def _workflow_snapshot_key(data: WorkflowCreatedEventData | WorkflowSnapshotEventData) -> str:
    return f"workflowId:{data.workflowId}:objectKey:{data.objectKey}"


JobCreatedEvent = EventDefinition(
    event_name=EventName.JOB_CREATED,
    data_model=JobCreatedEventData,
    derive_key=_job_created_key,
)

WorkflowCreatedEvent = EventDefinition(
    event_name=EventName.WORKFLOW_CREATED,
    data_model=WorkflowCreatedEventData,
    derive_key=_workflow_snapshot_key,
)

WorkflowAssistantsDeployedEvent = EventDefinition(
    event_name=EventName.WORKFLOW_ASSISTANTS_DEPLOYED,
    data_model=WorkflowSnapshotEventData,
    derive_key=_workflow_snapshot_key,
)

WorkflowStepProcessedEvent = EventDefinition(
    event_name=EventName.WORKFLOW_STEP_PROCESSED,
    data_model=WorkflowSnapshotEventData,
    derive_key=_workflow_snapshot_key,
)

WorkflowCompletedEvent = EventDefinition(
    event_name=EventName.WORKFLOW_COMPLETED,
    data_model=WorkflowSnapshotEventData,
    derive_key=_workflow_snapshot_key,
)

EVENT_DEFINITIONS: dict[EventName, EventDefinition] = {
    definition.event_name: definition
    for definition in (
        JobCreatedEvent,
        WorkflowCreatedEvent,
        WorkflowAssistantsDeployedEvent,
        WorkflowStepProcessedEvent,
        WorkflowCompletedEvent,
    )
}
