"""The workflow aggregate and its snapshot storage."""

from workflow_service.workflow.models import (
    Assistant,
    AssistantDesign,
    Workflow,
    WorkflowInstructions,
    WorkflowStep,
    snapshot_key,
)
from workflow_service.workflow.object_store import (
    FileObjectStore,
    InMemoryObjectStore,
    NoSuchKey,
    ObjectStore,
    ObjectSummary,
    PreconditionFailed,
)
from workflow_service.workflow.resolver import SnapshotResolver, snapshot_prefix
from workflow_service.workflow.save_client import SaveWorkflowClient

__all__ = [
    "Assistant",
    "AssistantDesign",
    "FileObjectStore",
    "InMemoryObjectStore",
    "NoSuchKey",
    "ObjectStore",
    "ObjectSummary",
    "PreconditionFailed",
    "SaveWorkflowClient",
    "SnapshotResolver",
    "Workflow",
    "WorkflowInstructions",
    "WorkflowStep",
    "snapshot_key",
    "snapshot_prefix",
]
