"""Application services wiring the event store, snapshots and the LLM together."""

from workflow_service.services.create_job import CreateJobService
from workflow_service.services.deploy_assistants import DeployAssistantsService
from workflow_service.services.get_latest import GetLatestWorkflowService
from workflow_service.services.process_step import ProcessWorkflowStepService
from workflow_service.services.send_query import SendQueryRequest, SendQueryService

__all__ = [
    "CreateJobService",
    "DeployAssistantsService",
    "GetLatestWorkflowService",
    "ProcessWorkflowStepService",
    "SendQueryRequest",
    "SendQueryService",
]
