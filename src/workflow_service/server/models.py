"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from workflow_service.workflow.models import Assistant


class CreateJobRequest(BaseModel):
    jobId: str


class CreateJobResponse(BaseModel):
    jobId: str
    created: bool


class SendQueryResponse(BaseModel):
    query: str
    promptEnhanceRounds: int
    responseEnhanceRounds: int
    workflowId: str
    objectKey: str


class DeployAssistantsRequest(BaseModel):
    assistants: list[Assistant] = Field(min_length=1)


class WorkflowSnapshotResponse(BaseModel):
    workflowId: str
    objectKey: str
