"""Run the pending step of a workflow against the LLM.

The worker is driven by events: each `WorkflowAssistantsDeployed` or
`WorkflowStepProcessed` event names a snapshot whose pending step should run
next. The result is saved as a new snapshot and announced with
`WorkflowStepProcessed`, or with `WorkflowCompleted` once no step remains.

The new snapshot is keyed by the trigger's `created_at` and the id of the step
it settles, so a redelivered trigger maps to the same key. A redelivery whose
step already settled re-announces the stored snapshot instead of calling the
model again; the event store then reports the announcement as a duplicate.
"""

from __future__ import annotations

import logging

from workflow_service.event_store.client import EventStoreClient
from workflow_service.events.base import Event, EventName
from workflow_service.events.definitions import (
    WorkflowCompletedEvent,
    WorkflowStepProcessedEvent,
)
from workflow_service.llm.provider import LLMInvokeError, LLMProvider
from workflow_service.result import (
    Failure,
    FailureKind,
    Success,
    is_failure_of_kind,
    make_failure,
    make_success,
)
from workflow_service.services.publishing import publish_event
from workflow_service.workflow.models import Workflow, WorkflowStep, snapshot_key
from workflow_service.workflow.resolver import SnapshotResolver
from workflow_service.workflow.save_client import SaveWorkflowClient

PREVIOUS_RESULT_PLACEHOLDER = "<PREVIOUS_RESULT>"

_ACCEPTED_EVENTS = frozenset(
    {EventName.WORKFLOW_ASSISTANTS_DEPLOYED, EventName.WORKFLOW_STEP_PROCESSED}
)

_logger = logging.getLogger(__name__)


class ProcessWorkflowStepService:
    def __init__(
        self,
        resolver: SnapshotResolver,
        llm: LLMProvider,
        save_client: SaveWorkflowClient,
        event_store: EventStoreClient,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._resolver = resolver
        self._llm = llm
        self._save_client = save_client
        self._event_store = event_store
        self._logger = logger or _logger

    def process_step(self, event: Event) -> Success[dict[str, object]] | Failure:
        log_ctx = "ProcessWorkflowStepService.process_step"

        if not isinstance(event, Event) or event.event_name not in _ACCEPTED_EVENTS:
            failure = make_failure(
                FailureKind.INVALID_ARGUMENTS,
                "Expected WorkflowAssistantsDeployedEvent or WorkflowStepProcessedEvent "
                f"but got {event!r}",
                False,
            )
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        object_key = str(event.event_data["objectKey"])
        read = self._resolver.read(object_key)
        if isinstance(read, Failure):
            self._logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(read), "object_key": object_key},
            )
            return read

        workflow = read.value
        current = workflow.current_step()
        if current is None:
            failure = make_failure(
                FailureKind.INVALID_ARGUMENTS, "No more steps to process in the workflow", False
            )
            self._logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(failure), "object_key": object_key},
            )
            return failure

        step_key = snapshot_key(
            workflow.workflowId, event.created_at, current.stepId, self._save_client.key_prefix
        )

        settled = self._step_already_settled(workflow.workflowId, current)
        if isinstance(settled, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(settled)})
            return settled
        if settled.value:
            return self._resume_settled_step(step_key)

        executed = self._execute_step(workflow, current)
        if is_failure_of_kind(executed, FailureKind.LLM_INVOKE_PERMANENT):
            return self._record_failed_step(workflow, executed, event.created_at, step_key)
        if isinstance(executed, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(executed)})
            return executed

        saved = self._save_client.save(executed.value, now=event.created_at)
        if is_failure_of_kind(saved, FailureKind.DUPLICATE_WORKFLOW):
            # Another delivery of the same trigger settled the step first.
            return self._resume_settled_step(step_key)
        if isinstance(saved, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(saved)})
            return saved

        return self._announce(executed.value, saved.value)

    def _step_already_settled(
        self, workflow_id: str, step: WorkflowStep
    ) -> Success[bool] | Failure:
        latest = self._resolver.read_latest(workflow_id)
        if isinstance(latest, Failure):
            return latest
        steps = latest.value.steps
        idx = step.executionOrder - 1
        return make_success(len(steps) > idx and steps[idx].stepStatus != "pending")

    def _resume_settled_step(self, object_key: str) -> Success[dict[str, object]] | Failure:
        """Report the outcome already stored at `object_key` without running the step."""

        log_ctx = "ProcessWorkflowStepService.process_step"

        stored = self._resolver.read(object_key)
        if isinstance(stored, Failure):
            self._logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(stored), "object_key": object_key},
            )
            return stored

        workflow = stored.value
        if workflow.is_failed():
            failure = make_failure(
                FailureKind.LLM_INVOKE_PERMANENT, workflow.steps[-1].llmResult, False
            )
            self._logger.error(
                f"{log_ctx} exit failure",
                extra={"failure": str(failure), "object_key": object_key, "replayed": True},
            )
            return failure

        self._logger.info(
            f"{log_ctx} step already settled",
            extra={"workflow_id": workflow.workflowId, "object_key": object_key},
        )
        return self._announce(workflow, object_key)

    def _announce(self, workflow: Workflow, object_key: str) -> Success[dict[str, object]] | Failure:
        log_ctx = "ProcessWorkflowStepService.process_step"

        definition = (
            WorkflowCompletedEvent if workflow.is_completed() else WorkflowStepProcessedEvent
        )
        published = publish_event(
            self._event_store,
            definition,
            {"workflowId": workflow.workflowId, "objectKey": object_key},
            self._logger,
        )
        if isinstance(published, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(published)})
            return published

        self._logger.info(
            f"{log_ctx} exit success",
            extra={
                "workflow_id": workflow.workflowId,
                "object_key": object_key,
                "completed": workflow.is_completed(),
            },
        )
        return make_success(
            {
                "workflowId": workflow.workflowId,
                "objectKey": object_key,
                "completed": workflow.is_completed(),
            }
        )

    def _record_failed_step(
        self, workflow: Workflow, llm_failure: Failure, now: str, step_key: str
    ) -> Success[dict[str, object]] | Failure:
        """Save a snapshot with the pending step marked failed.

        Returns the model failure unless saving itself fails.
        """

        log_ctx = "ProcessWorkflowStepService.process_step"

        failed = workflow.fail_step(str(llm_failure.detail))
        if isinstance(failed, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(failed)})
            return failed

        saved = self._save_client.save(failed.value, now=now)
        if is_failure_of_kind(saved, FailureKind.DUPLICATE_WORKFLOW):
            return self._resume_settled_step(step_key)
        if isinstance(saved, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(saved)})
            return saved

        self._logger.error(
            f"{log_ctx} exit failure",
            extra={"failure": str(llm_failure), "object_key": saved.value},
        )
        return llm_failure

    def _execute_step(self, workflow: Workflow, current: WorkflowStep) -> Success[Workflow] | Failure:
        llm_prompt = current.llmPrompt
        if PREVIOUS_RESULT_PLACEHOLDER in llm_prompt:
            previous = workflow.last_executed_step()
            if previous is None:
                return make_failure(
                    FailureKind.INVALID_ARGUMENTS,
                    f"No previous step to reference for {PREVIOUS_RESULT_PLACEHOLDER}",
                    False,
                )
            llm_prompt = llm_prompt.replace(PREVIOUS_RESULT_PLACEHOLDER, previous.llmResult, 1)

        try:
            llm_result = self._llm.chat(current.llmSystem, llm_prompt)
        except LLMInvokeError as e:
            kind = (
                FailureKind.LLM_INVOKE_TRANSIENT if e.transient else FailureKind.LLM_INVOKE_PERMANENT
            )
            return make_failure(kind, e, e.transient)
        except Exception as e:
            self._logger.exception("ProcessWorkflowStepService._execute_step unexpected error")
            return make_failure(FailureKind.UNRECOGNIZED, e, True)

        return workflow.complete_step(llm_prompt, llm_result)
