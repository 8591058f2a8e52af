"""Deploy the assistant roster of a freshly created workflow.

A roster is either supplied by the caller (`deploy`) or designed by the model
in response to a `WorkflowCreated` event (`deploy_from_event`). Both save a
snapshot with the first step queued and announce it with
`WorkflowAssistantsDeployed`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence

from pydantic import ValidationError

from workflow_service.event_store.client import EventStoreClient
from workflow_service.events.base import Event, EventName
from workflow_service.events.definitions import WorkflowAssistantsDeployedEvent
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
from workflow_service.workflow.models import (
    DEPLOYED_SUFFIX,
    Assistant,
    AssistantDesign,
    Workflow,
    snapshot_key,
)
from workflow_service.workflow.resolver import SnapshotResolver
from workflow_service.workflow.save_client import SaveWorkflowClient

_logger = logging.getLogger(__name__)

QUERY_PLACEHOLDER = "<QUERY>"

WORKFLOW_ARCHITECT = Assistant(
    name="Workflow Architect",
    role="Designs a sequence of assistants that answers the user's query.",
    system=(
        "You design multi-step LLM workflows. Reply with ONLY a JSON array of assistants. "
        'Each assistant is an object with the string fields "name", "role", "system", '
        '"prompt" and "phaseName". The first prompt carries the user query; every later '
        'prompt must contain "<PREVIOUS_RESULT>".'
    ),
    prompt=(
        "Design the assistant workflow for this query:\n"
        f"<query>{QUERY_PLACEHOLDER}</query>\n"
        "Plan {prompt_rounds} prompt enhancement round(s) before answering and "
        "{response_rounds} response enhancement round(s) after the first answer."
    ),
    phaseName="Architect Workflow",
)

RESPONSE_RULES = (
    "Your response must contain only the direct answer or requested content; "
    "it must not include commentary or conversational filler."
)


class DeployAssistantsService:
    """Attach the assistant roster to a fresh workflow and queue its first step."""

    def __init__(
        self,
        resolver: SnapshotResolver,
        save_client: SaveWorkflowClient,
        event_store: EventStoreClient,
        *,
        llm: LLMProvider | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._resolver = resolver
        self._save_client = save_client
        self._event_store = event_store
        self._llm = llm
        self._logger = logger or _logger

    def deploy(
        self, workflow_id: str, assistants: Sequence[Assistant | Mapping[str, object]]
    ) -> Success[dict[str, object]] | Failure:
        log_ctx = "DeployAssistantsService.deploy"

        resolved = self._resolver.read_latest(workflow_id)
        if isinstance(resolved, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(resolved)})
            return resolved

        deployed = resolved.value.deploy_assistants(assistants)
        if isinstance(deployed, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(deployed)})
            return deployed

        saved = self._save_client.save(deployed.value)
        if isinstance(saved, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(saved)})
            return saved

        return self._announce(log_ctx, workflow_id, saved.value)

    def deploy_from_event(self, event: Event) -> Success[dict[str, object]] | Failure:
        """Have the model design the roster for the workflow a `WorkflowCreated` event names.

        The deployed snapshot is keyed by the event's `created_at`, so a
        redelivered event re-announces the snapshot saved the first time.
        """

        log_ctx = "DeployAssistantsService.deploy_from_event"

        if not isinstance(event, Event) or event.event_name != EventName.WORKFLOW_CREATED:
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.INVALID_ARGUMENTS,
                    f"Expected WorkflowCreatedEvent but got {event!r}",
                    False,
                ),
            )
        if self._llm is None:
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.INVALID_ARGUMENTS, "No LLM provider configured for design", False
                ),
            )

        read = self._resolver.read(str(event.event_data["objectKey"]))
        if isinstance(read, Failure):
            return self._fail(log_ctx, read)
        workflow = read.value
        deployed_key = snapshot_key(
            workflow.workflowId, event.created_at, DEPLOYED_SUFFIX, self._save_client.key_prefix
        )

        latest = self._resolver.read_latest(workflow.workflowId)
        if isinstance(latest, Failure):
            return self._fail(log_ctx, latest)
        if latest.value.assistants:
            stored = self._resolver.read(deployed_key)
            if is_failure_of_kind(stored, FailureKind.NOT_FOUND):
                # Deployed through another path; this event has nothing to announce.
                return self._fail(
                    log_ctx,
                    make_failure(
                        FailureKind.INVALID_ARGUMENTS,
                        f"Workflow {workflow.workflowId!r} already has assistants deployed",
                        False,
                    ),
                )
            if isinstance(stored, Failure):
                return self._fail(log_ctx, stored)
            self._logger.info(
                f"{log_ctx} assistants already deployed",
                extra={"workflow_id": workflow.workflowId, "object_key": deployed_key},
            )
            return self._announce(log_ctx, workflow.workflowId, deployed_key)

        designed = self._design_assistants(workflow, event)
        if isinstance(designed, Failure):
            return self._fail(log_ctx, designed)
        roster, design = designed.value

        deployed = workflow.deploy_assistants(roster, design)
        if isinstance(deployed, Failure):
            return self._fail(log_ctx, deployed)

        saved = self._save_client.save(deployed.value, now=event.created_at)
        if is_failure_of_kind(saved, FailureKind.DUPLICATE_WORKFLOW):
            return self._announce(log_ctx, workflow.workflowId, deployed_key)
        if isinstance(saved, Failure):
            return self._fail(log_ctx, saved)

        return self._announce(log_ctx, workflow.workflowId, saved.value)

    def _design_assistants(
        self, workflow: Workflow, event: Event
    ) -> Success[tuple[list[Assistant], AssistantDesign]] | Failure:
        system = WORKFLOW_ARCHITECT.system
        prompt = WORKFLOW_ARCHITECT.prompt.format(
            prompt_rounds=event.event_data["promptEnhanceRounds"],
            response_rounds=event.event_data["responseEnhanceRounds"],
        ).replace(QUERY_PLACEHOLDER, workflow.instructions.query)

        try:
            reply = self._llm.chat(system, prompt)
        except LLMInvokeError as e:
            kind = (
                FailureKind.LLM_INVOKE_TRANSIENT if e.transient else FailureKind.LLM_INVOKE_PERMANENT
            )
            return make_failure(kind, e, e.transient)
        except Exception as e:
            self._logger.exception("DeployAssistantsService._design_assistants unexpected error")
            return make_failure(FailureKind.UNRECOGNIZED, e, True)

        try:
            proposed = json.loads(reply)
            if not isinstance(proposed, list) or not proposed:
                raise ValueError(f"expected a non-empty JSON array, got {type(proposed).__name__}")
            roster = [
                Assistant.model_validate(
                    {**item, "system": f"{item.get('system', '')}\n{RESPONSE_RULES}"}
                )
                for item in proposed
            ]
        except (ValueError, TypeError, AttributeError, ValidationError) as e:
            # Another sample from the model may well parse.
            return make_failure(
                FailureKind.UNRECOGNIZED, f"Failed to parse assistants from completion: {e}", True
            )

        design = AssistantDesign(
            assistant=WORKFLOW_ARCHITECT, llmSystem=system, llmPrompt=prompt, llmResult=reply
        )
        return make_success((roster, design))

    def _announce(
        self, log_ctx: str, workflow_id: str, object_key: str
    ) -> Success[dict[str, object]] | Failure:
        published = publish_event(
            self._event_store,
            WorkflowAssistantsDeployedEvent,
            {"workflowId": workflow_id, "objectKey": object_key},
            self._logger,
        )
        if isinstance(published, Failure):
            return self._fail(log_ctx, published)

        self._logger.info(
            f"{log_ctx} exit success",
            extra={"workflow_id": workflow_id, "object_key": object_key},
        )
        return make_success({"workflowId": workflow_id, "objectKey": object_key})

    def _fail(self, log_ctx: str, failure: Failure) -> Failure:
        self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
        return failure
