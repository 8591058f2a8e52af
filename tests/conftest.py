"""Test configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from workflow_service.config import ServiceSettings
from workflow_service.event_store.client import EventStoreClient
from workflow_service.event_store.tables import InMemoryEventTable
from workflow_service.llm.provider import LLMInvokeError, LLMProvider
from workflow_service.workflow.object_store import InMemoryObjectStore
from workflow_service.workflow.resolver import SnapshotResolver
from workflow_service.workflow.save_client import SaveWorkflowClient

BUCKET = "workflow-snapshots"


class FakeLLM(LLMProvider):
    """Echoes prompts back, or raises a queued error, or returns a queued reply."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.errors: list[LLMInvokeError] = []
        self.replies: list[str] = []

    def chat(self, system: str, prompt: str) -> str:
        self.calls.append((system, prompt))
        if self.errors:
            raise self.errors.pop(0)
        if self.replies:
            return self.replies.pop(0)
        return f"answer {len(self.calls)}: {prompt}"


@pytest.fixture
def settings(monkeypatch, tmp_path: Path) -> ServiceSettings:
    monkeypatch.setenv("WORKFLOW_STATE_PATH", str(tmp_path / "agent_state"))
    monkeypatch.setenv("WORKFLOW_SERVICE_BUCKET_NAME", BUCKET)
    monkeypatch.setenv("WORKFLOW_SNAPSHOT_PREFIX", "")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    return ServiceSettings()


@pytest.fixture
def event_table() -> InMemoryEventTable:
    return InMemoryEventTable()


@pytest.fixture
def event_store(event_table: InMemoryEventTable) -> EventStoreClient:
    return EventStoreClient(event_table)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def resolver(object_store: InMemoryObjectStore) -> SnapshotResolver:
    return SnapshotResolver(object_store, BUCKET)


@pytest.fixture
def save_client(object_store: InMemoryObjectStore) -> SaveWorkflowClient:
    return SaveWorkflowClient(object_store, BUCKET)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


def _assistant(name: str, prompt: str = "Answer the query carefully") -> dict[str, object]:
    return {
        "name": name,
        "role": f"{name} role",
        "system": f"You are the {name} assistant",
        "prompt": prompt,
        "phaseName": "enhance",
    }


@pytest.fixture
def workflow_props() -> Callable[..., dict[str, object]]:
    """Builds a serialized workflow with the given step statuses."""

    def build(workflow_id: str = "wf1", statuses: tuple[str, ...] = ()) -> dict[str, object]:
        assistants = [_assistant(f"assistant{i + 1}") for i in range(max(len(statuses), 1))]
        steps = [
            {
                "stepId": f"x{i + 1:04d}-assistant-assistant{i + 1}",
                "executionOrder": i + 1,
                "stepStatus": status,
                "assistant": assistants[i],
                "llmSystem": assistants[i]["system"],
                "llmPrompt": assistants[i]["prompt"],
                "llmResult": f"result {i + 1}" if status == "completed" else "",
            }
            for i, status in enumerate(statuses)
        ]
        return {
            "workflowId": workflow_id,
            "instructions": {"query": "What is the meaning of life?"},
            "assistants": assistants if statuses else [],
            "steps": steps,
        }

    return build


@pytest.fixture
def bucket() -> str:
    return BUCKET


@pytest.fixture
def assistant() -> Callable[..., dict[str, object]]:
    return _assistant


@pytest.fixture
def put_snapshot(object_store: InMemoryObjectStore) -> Callable[[str, object], None]:
    """Stores a snapshot body (dict or raw text) under a key."""

    def put(key: str, body: object) -> None:
        text = body if isinstance(body, str) else json.dumps(body)
        object_store.put_object_if_absent(BUCKET, key, text)

    return put
