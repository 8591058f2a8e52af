"""The workflow aggregate reconstructed from snapshots.

A workflow is a query plus an ordered list of steps, one per deployed
assistant. Steps run strictly in order; every snapshot carries the whole
aggregate, so the latest snapshot alone is enough to resume or display it.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping, Sequence
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError, model_validator

from workflow_service.events.base import utc_iso_now
from workflow_service.result import Failure, FailureKind, Success, make_failure, make_success

EXECUTION_ORDER_ID_LENGTH = 4
CREATED_SUFFIX = f"x{0:0{EXECUTION_ORDER_ID_LENGTH}d}-created"
DEPLOYED_SUFFIX = f"x{0:0{EXECUTION_ORDER_ID_LENGTH}d}-deployed"

Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, strict=True)]
RoundCount = Annotated[int, Field(strict=True, ge=1, le=10)]

StepStatus = Literal["pending", "completed", "failed"]


def snapshot_key(workflow_id: str, timestamp: str, suffix: str, prefix: str = "") -> str:
    base = f"{workflow_id}/{timestamp}-{suffix}.json"
    return f"{prefix.strip('/')}/{base}" if prefix.strip("/") else base


class Assistant(BaseModel):
    name: Text
    role: Text
    system: Text
    prompt: Text
    phaseName: Text
    directive: str = ""


class WorkflowInstructions(BaseModel):
    """The user query plus optional tunables."""

    model_config = ConfigDict(extra="allow")

    query: Text
    promptEnhanceRounds: RoundCount | None = None
    responseEnhanceRounds: RoundCount | None = None


class AssistantDesign(BaseModel):
    """The model call that produced the assistant roster."""

    assistant: Assistant
    llmSystem: str
    llmPrompt: str
    llmResult: str


class WorkflowStep(BaseModel):
    stepId: Text
    executionOrder: Annotated[int, Field(strict=True, ge=1)]
    stepStatus: StepStatus
    assistant: Assistant
    llmSystem: str
    llmPrompt: str
    llmResult: str = ""


class Workflow(BaseModel):
    workflowId: Text
    instructions: WorkflowInstructions
    assistants: list[Assistant] = Field(default_factory=list)
    design: AssistantDesign | None = None
    steps: list[WorkflowStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_step_progression(self) -> Workflow:
        for idx, step in enumerate(self.steps):
            if step.executionOrder != idx + 1:
                raise ValueError(
                    f"Step {step.stepId!r} has executionOrder {step.executionOrder}, "
                    f"expected {idx + 1}"
                )
        # Only the last step may be pending or failed.
        for step in self.steps[:-1]:
            if step.stepStatus != "completed":
                raise ValueError(
                    f"Step {step.stepId!r} is {step.stepStatus} but is followed by later steps"
                )
        if self.assistants and len(self.steps) > len(self.assistants):
            raise ValueError(
                f"Workflow has {len(self.steps)} steps but only {len(self.assistants)} assistants"
            )
        return self

    # Construction

    @classmethod
    def from_instructions(cls, instructions: Mapping[str, object]) -> Success[Workflow] | Failure:
        """Create a brand new workflow with a fresh id and no steps."""

        return cls.from_props(
            {"workflowId": uuid.uuid4().hex, "instructions": dict(instructions), "steps": []}
        )

    @classmethod
    def from_props(cls, props: object) -> Success[Workflow] | Failure:
        if not isinstance(props, Mapping):
            return make_failure(
                FailureKind.INVALID_ARGUMENTS, f"Expected workflow mapping but got {props!r}", False
            )
        try:
            return make_success(cls.model_validate(dict(props)))
        except ValidationError as e:
            return make_failure(FailureKind.INVALID_ARGUMENTS, e, False)

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json", exclude_none=True)

    # Queries

    def current_step(self) -> WorkflowStep | None:
        """The pending step, if any."""

        if self.steps and self.steps[-1].stepStatus == "pending":
            return self.steps[-1]
        return None

    def last_executed_step(self) -> WorkflowStep | None:
        for step in reversed(self.steps):
            if step.stepStatus == "completed":
                return step
        return None

    def is_failed(self) -> bool:
        return bool(self.steps) and self.steps[-1].stepStatus == "failed"

    def is_completed(self) -> bool:
        return (
            bool(self.assistants)
            and len(self.steps) == len(self.assistants)
            and all(step.stepStatus == "completed" for step in self.steps)
        )

    def object_key(self, prefix: str = "", now: str | None = None) -> str:
        """Snapshot key for the current state.

        Keys of one workflow sort lexicographically in creation order: the
        timestamp comes first, and the suffix (created, deployed, then the zero
        padded id of the last settled step) breaks ties within one millisecond.
        """

        settled = [s for s in self.steps if s.stepStatus != "pending"]
        if settled:
            suffix = settled[-1].stepId
        else:
            suffix = DEPLOYED_SUFFIX if self.steps else CREATED_SUFFIX
        return snapshot_key(self.workflowId, now or utc_iso_now(), suffix, prefix)

    # Transitions (each returns a new workflow; snapshots are never edited)

    def deploy_assistants(
        self,
        assistants: Sequence[Assistant | Mapping[str, object]],
        design: AssistantDesign | None = None,
    ) -> Success[Workflow] | Failure:
        """Attach the roster and queue its first step.

        `design` records the model call that produced the roster, when one did.
        """

        if self.assistants or self.steps:
            return make_failure(
                FailureKind.INVALID_ARGUMENTS,
                "Cannot deploy assistants after workflow steps have been initialized",
                False,
            )
        if not assistants:
            return make_failure(
                FailureKind.INVALID_ARGUMENTS, "At least one assistant is required", False
            )
        try:
            roster = [
                a if isinstance(a, Assistant) else Assistant.model_validate(a) for a in assistants
            ]
        except ValidationError as e:
            return make_failure(FailureKind.INVALID_ARGUMENTS, e, False)

        first = _pending_step(1, roster[0])
        return make_success(
            self.model_copy(update={"assistants": roster, "design": design, "steps": [first]})
        )

    def complete_step(self, llm_prompt: str, llm_result: str) -> Success[Workflow] | Failure:
        """Settle the pending step and queue the next assistant, if any."""

        current = self.current_step()
        if current is None:
            return make_failure(
                FailureKind.INVALID_ARGUMENTS, "No pending step to complete", False
            )

        done = current.model_copy(
            update={"stepStatus": "completed", "llmPrompt": llm_prompt, "llmResult": llm_result}
        )
        steps = [*self.steps[:-1], done]
        if len(steps) < len(self.assistants):
            steps.append(_pending_step(len(steps) + 1, self.assistants[len(steps)]))
        return make_success(self.model_copy(update={"steps": steps}))

    def fail_step(self, reason: str) -> Success[Workflow] | Failure:
        current = self.current_step()
        if current is None:
            return make_failure(FailureKind.INVALID_ARGUMENTS, "No pending step to fail", False)

        failed = current.model_copy(update={"stepStatus": "failed", "llmResult": reason})
        return make_success(self.model_copy(update={"steps": [*self.steps[:-1], failed]}))


def _normalize_step_id(step_id: str) -> str:
    return re.sub(r"[^a-zA-Z0-9-]", "", re.sub(r"\s+", "-", step_id))


def _pending_step(execution_order: int, assistant: Assistant) -> WorkflowStep:
    order_id = f"{execution_order:0{EXECUTION_ORDER_ID_LENGTH}d}"
    return WorkflowStep(
        stepId=_normalize_step_id(f"x{order_id}-assistant-{assistant.name}"),
        executionOrder=execution_order,
        stepStatus="pending",
        assistant=assistant,
        llmSystem=assistant.system,
        llmPrompt=assistant.prompt,
        llmResult="",
    )
