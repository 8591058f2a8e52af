"""Accept a user query and start a new workflow for it."""

from __future__ import annotations

import logging
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints, ValidationError

from workflow_service.event_store.client import EventStoreClient
from workflow_service.events.definitions import WorkflowCreatedEvent
from workflow_service.result import Failure, FailureKind, Success, make_failure, make_success
from workflow_service.services.publishing import publish_event
from workflow_service.workflow.models import Workflow
from workflow_service.workflow.save_client import SaveWorkflowClient

_logger = logging.getLogger(__name__)


class SendQueryRequest(BaseModel):
    query: Annotated[str, StringConstraints(strip_whitespace=True, min_length=6, strict=True)]
    promptEnhanceRounds: Annotated[int, Field(strict=True, ge=1, le=10)]
    responseEnhanceRounds: Annotated[int, Field(strict=True, ge=1, le=10)]

    @classmethod
    def from_props(cls, props: object) -> Success[SendQueryRequest] | Failure:
        try:
            return make_success(cls.model_validate(props))
        except ValidationError as e:
            return make_failure(FailureKind.INVALID_ARGUMENTS, e, False)


class SendQueryService:
    def __init__(
        self,
        save_client: SaveWorkflowClient,
        event_store: EventStoreClient,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._save_client = save_client
        self._event_store = event_store
        self._logger = logger or _logger

    def send_query(self, request: SendQueryRequest) -> Success[dict[str, object]] | Failure:
        """Create, save and announce a workflow.

        Returns the request fields plus `workflowId` and the `objectKey` of the
        first snapshot.
        """

        log_ctx = "SendQueryService.send_query"

        if not isinstance(request, SendQueryRequest):
            failure = make_failure(
                FailureKind.INVALID_ARGUMENTS, f"Expected SendQueryRequest but got {request!r}", False
            )
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        created = Workflow.from_instructions(request.model_dump())
        if isinstance(created, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(created)})
            return created

        workflow = created.value
        saved = self._save_client.save(workflow)
        if isinstance(saved, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(saved)})
            return saved

        object_key = saved.value
        published = publish_event(
            self._event_store,
            WorkflowCreatedEvent,
            {
                "workflowId": workflow.workflowId,
                "objectKey": object_key,
                "promptEnhanceRounds": request.promptEnhanceRounds,
                "responseEnhanceRounds": request.responseEnhanceRounds,
            },
            self._logger,
        )
        if isinstance(published, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(published)})
            return published

        self._logger.info(
            f"{log_ctx} exit success",
            extra={"workflow_id": workflow.workflowId, "object_key": object_key},
        )
        return make_success(
            {**request.model_dump(), "workflowId": workflow.workflowId, "objectKey": object_key}
        )
