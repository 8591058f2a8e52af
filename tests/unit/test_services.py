"""Unit tests for the job, query and assistant deployment services."""

from __future__ import annotations

import json
from unittest.mock import Mock

import pytest

from workflow_service.event_store import EventStoreClient
from workflow_service.events import EventName, JobCreatedEvent
from workflow_service.llm import LLMInvokeError
from workflow_service.result import Failure, FailureKind, Success, is_failure_of_kind, make_failure
from workflow_service.services import (
    CreateJobService,
    DeployAssistantsService,
    GetLatestWorkflowService,
    SendQueryRequest,
    SendQueryService,
)
from workflow_service.services.deploy_assistants import RESPONSE_RULES, WORKFLOW_ARCHITECT
from workflow_service.workflow import SaveWorkflowClient


def _request(**overrides: object) -> SendQueryRequest:
    props: dict[str, object] = {
        "query": "What is the meaning of life?",
        "promptEnhanceRounds": 2,
        "responseEnhanceRounds": 1,
    }
    props.update(overrides)
    result = SendQueryRequest.from_props(props)
    assert isinstance(result, Success)
    return result.value


def test_create_job_publishes_once(event_store, event_table) -> None:
    service = CreateJobService(event_store)

    first = service.create_job("job-000001")
    second = service.create_job("job-000001")

    assert first == Success({"jobId": "job-000001", "created": True})
    assert second == first
    assert len(event_table.list(EventName.JOB_CREATED.value)) == 1


def test_create_job_rejects_short_ids(event_store, event_table) -> None:
    result = CreateJobService(event_store).create_job("job")

    assert is_failure_of_kind(result, FailureKind.INVALID_ARGUMENTS)
    assert event_table.list() == []


def test_create_job_surfaces_backend_failures() -> None:
    event_store = Mock(spec=EventStoreClient)
    event_store.publish.return_value = make_failure(FailureKind.UNRECOGNIZED, "down", True)

    result = CreateJobService(event_store).create_job("job-000001")

    assert is_failure_of_kind(result, FailureKind.UNRECOGNIZED)


def test_send_query_request_validation() -> None:
    assert is_failure_of_kind(
        SendQueryRequest.from_props({"query": "short"}), FailureKind.INVALID_ARGUMENTS
    )
    assert is_failure_of_kind(
        SendQueryRequest.from_props(
            {"query": "What is it?", "promptEnhanceRounds": 0, "responseEnhanceRounds": 1}
        ),
        FailureKind.INVALID_ARGUMENTS,
    )


def test_send_query_saves_snapshot_and_publishes(
    save_client, event_store, event_table, resolver
) -> None:
    result = SendQueryService(save_client, event_store).send_query(_request())

    assert isinstance(result, Success)
    output = result.value
    assert output["query"] == "What is the meaning of life?"
    assert output["promptEnhanceRounds"] == 2
    assert output["responseEnhanceRounds"] == 1
    workflow_id = output["workflowId"]
    assert str(output["objectKey"]).startswith(f"{workflow_id}/")
    assert str(output["objectKey"]).endswith("-x0000-created.json")

    [record] = event_table.list(EventName.WORKFLOW_CREATED.value)
    assert record.eventData["objectKey"] == output["objectKey"]

    latest = resolver.read_latest(workflow_id)
    assert isinstance(latest, Success)
    assert latest.value.instructions.query == "What is the meaning of life?"


def test_send_query_treats_duplicate_event_as_success(save_client) -> None:
    event_store = Mock(spec=EventStoreClient)
    event_store.publish.return_value = make_failure(FailureKind.DUPLICATE_EVENT, "exists", False)

    result = SendQueryService(save_client, event_store).send_query(_request())

    assert isinstance(result, Success)


def test_send_query_without_bucket_fails(object_store, event_store) -> None:
    result = SendQueryService(SaveWorkflowClient(object_store, ""), event_store).send_query(
        _request()
    )

    assert is_failure_of_kind(result, FailureKind.INVALID_ARGUMENTS)


def test_get_latest_workflow_serializes(resolver, put_snapshot, workflow_props) -> None:
    put_snapshot("wf1/2024-08-01T10:00:00Z-a", workflow_props(statuses=("pending",)))

    result = GetLatestWorkflowService(resolver).get_latest_workflow("wf1")

    assert isinstance(result, Success)
    assert result.value["workflowId"] == "wf1"
    assert result.value["steps"][0]["stepStatus"] == "pending"


def test_get_latest_workflow_not_found(resolver) -> None:
    result = GetLatestWorkflowService(resolver).get_latest_workflow("wf1")

    assert is_failure_of_kind(result, FailureKind.NOT_FOUND)


def test_deploy_assistants_saves_and_publishes(
    resolver, save_client, event_store, event_table, assistant
) -> None:
    created = SendQueryService(save_client, event_store).send_query(_request())
    assert isinstance(created, Success)
    workflow_id = created.value["workflowId"]

    result = DeployAssistantsService(resolver, save_client, event_store).deploy(
        workflow_id, [assistant("first"), assistant("second")]
    )

    assert isinstance(result, Success)
    [record] = event_table.list(EventName.WORKFLOW_ASSISTANTS_DEPLOYED.value)
    assert record.eventData == {"workflowId": workflow_id, "objectKey": result.value["objectKey"]}

    latest = resolver.read(result.value["objectKey"])
    assert isinstance(latest, Success)
    assert latest.value.current_step().assistant.name == "first"


def test_deploy_assistants_unknown_workflow(resolver, save_client, event_store, assistant) -> None:
    result = DeployAssistantsService(resolver, save_client, event_store).deploy(
        "workflow-missing", [assistant("first")]
    )

    assert is_failure_of_kind(result, FailureKind.NOT_FOUND)


@pytest.fixture
def created_event(save_client, event_store):
    """Starts a workflow and returns the WorkflowCreated event it published."""

    def build():
        sent = SendQueryService(save_client, event_store).send_query(_request())
        assert isinstance(sent, Success)
        event = event_store.read(
            EventName.WORKFLOW_CREATED,
            f"workflowId:{sent.value['workflowId']}:objectKey:{sent.value['objectKey']}",
        )
        assert isinstance(event, Success)
        return event.value

    return build


@pytest.fixture
def designer(resolver, save_client, event_store, fake_llm) -> DeployAssistantsService:
    return DeployAssistantsService(resolver, save_client, event_store, llm=fake_llm)


def test_deploy_from_event_uses_designed_assistants(
    designer, created_event, fake_llm, resolver, event_table, assistant
) -> None:
    reply = json.dumps([assistant("drafter"), assistant("editor", "Improve <PREVIOUS_RESULT>")])
    fake_llm.replies.append(reply)
    event = created_event()
    workflow_id = event.event_data["workflowId"]

    result = designer.deploy_from_event(event)

    assert isinstance(result, Success)
    assert result.value["objectKey"] == f"{workflow_id}/{event.created_at}-x0000-deployed.json"
    [record] = event_table.list(EventName.WORKFLOW_ASSISTANTS_DEPLOYED.value)
    assert record.eventData == result.value

    [(system, prompt)] = fake_llm.calls
    assert system == WORKFLOW_ARCHITECT.system
    assert "<query>What is the meaning of life?</query>" in prompt
    assert "Plan 2 prompt enhancement round(s)" in prompt

    deployed = resolver.read(result.value["objectKey"])
    assert isinstance(deployed, Success)
    workflow = deployed.value
    assert [a.name for a in workflow.assistants] == ["drafter", "editor"]
    assert all(a.system.endswith(RESPONSE_RULES) for a in workflow.assistants)
    assert workflow.current_step().assistant.name == "drafter"
    assert workflow.design is not None
    assert workflow.design.llmPrompt == prompt
    assert workflow.design.llmResult == reply


@pytest.mark.parametrize(
    "reply",
    ["Sure! Here is the plan.", '{"name": "drafter"}', "[]", '[{"name": "drafter"}]'],
)
def test_deploy_from_event_unparseable_design_is_transient(
    designer, created_event, fake_llm, object_store, bucket, event_table, reply
) -> None:
    fake_llm.replies.append(reply)

    result = designer.deploy_from_event(created_event())

    assert is_failure_of_kind(result, FailureKind.UNRECOGNIZED)
    assert isinstance(result, Failure)
    assert result.transient is True
    assert len(object_store.list_objects(bucket, "")) == 1
    assert event_table.list(EventName.WORKFLOW_ASSISTANTS_DEPLOYED.value) == []


def test_deploy_from_event_redelivery_designs_once(
    designer, created_event, fake_llm, object_store, bucket, event_table, assistant
) -> None:
    fake_llm.replies.append(json.dumps([assistant("drafter")]))
    event = created_event()

    first = designer.deploy_from_event(event)
    second = designer.deploy_from_event(event)

    assert isinstance(first, Success)
    assert second == first
    assert len(fake_llm.calls) == 1
    assert len(object_store.list_objects(bucket, "")) == 2
    assert len(event_table.list(EventName.WORKFLOW_ASSISTANTS_DEPLOYED.value)) == 1


def test_deploy_from_event_after_manual_deploy_is_invalid(
    designer, created_event, resolver, save_client, event_store, fake_llm, assistant
) -> None:
    event = created_event()
    manual = DeployAssistantsService(resolver, save_client, event_store).deploy(
        event.event_data["workflowId"], [assistant("drafter")]
    )
    assert isinstance(manual, Success)

    result = designer.deploy_from_event(event)

    assert is_failure_of_kind(result, FailureKind.INVALID_ARGUMENTS)
    assert fake_llm.calls == []


def test_deploy_from_event_surfaces_llm_errors(designer, created_event, fake_llm) -> None:
    fake_llm.errors.append(LLMInvokeError("quota exhausted", transient=False))

    result = designer.deploy_from_event(created_event())

    assert is_failure_of_kind(result, FailureKind.LLM_INVOKE_PERMANENT)


def test_deploy_from_event_rejects_other_events(designer) -> None:
    event = JobCreatedEvent.from_data({"jobId": "job-000001", "created": True})
    assert isinstance(event, Success)

    assert is_failure_of_kind(
        designer.deploy_from_event(event.value), FailureKind.INVALID_ARGUMENTS
    )


def test_deploy_from_event_requires_llm(resolver, save_client, event_store, created_event) -> None:
    service = DeployAssistantsService(resolver, save_client, event_store)

    assert is_failure_of_kind(
        service.deploy_from_event(created_event()), FailureKind.INVALID_ARGUMENTS
    )
