#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the service components directly:

* load settings from `.env`
* start a workflow for a query and deploy two assistants
* run every step against OpenAI, following the published events
* print the final snapshot

Snapshots and events are written under `WORKFLOW_STATE_PATH`.
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from workflow_service.config import ServiceSettings
from workflow_service.event_store.client import EventStoreClient
from workflow_service.event_store.tables import FileEventTable
from workflow_service.events import EventName
from workflow_service.llm import OpenAIProvider
from workflow_service.logging import configure_logging
from workflow_service.result import Failure
from workflow_service.services import (
    DeployAssistantsService,
    ProcessWorkflowStepService,
    SendQueryRequest,
    SendQueryService,
)
from workflow_service.workflow import FileObjectStore, SaveWorkflowClient, SnapshotResolver

ASSISTANTS = [
    {
        "name": "drafter",
        "role": "writer",
        "system": "You answer questions clearly and concisely.",
        "prompt": "Answer the user's question.",
        "phaseName": "draft",
    },
    {
        "name": "editor",
        "role": "reviewer",
        "system": "You improve answers without changing their meaning.",
        "prompt": "Improve this answer: <PREVIOUS_RESULT>",
        "phaseName": "refine",
    },
]


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a two-step workflow (programmatic example).")
    parser.add_argument("--query", required=True, help="The question to answer")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ServiceSettings()
    configure_logging(settings.log_level)

    event_store = EventStoreClient(FileEventTable(settings.event_store_dir))
    objects = FileObjectStore(settings.snapshot_store_dir)
    resolver = SnapshotResolver(objects, settings.bucket_name, settings.snapshot_prefix)
    save_client = SaveWorkflowClient(objects, settings.bucket_name, settings.snapshot_prefix)

    request = SendQueryRequest.from_props(
        {"query": args.query, "promptEnhanceRounds": 1, "responseEnhanceRounds": 1}
    )
    if isinstance(request, Failure):
        print(str(request))
        return 2

    sent = SendQueryService(save_client, event_store).send_query(request.value)
    if isinstance(sent, Failure):
        print(str(sent))
        return 1
    workflow_id = str(sent.value["workflowId"])

    deployed = DeployAssistantsService(resolver, save_client, event_store).deploy(
        workflow_id, ASSISTANTS
    )
    if isinstance(deployed, Failure):
        print(str(deployed))
        return 1

    worker = ProcessWorkflowStepService(resolver, OpenAIProvider(settings), save_client, event_store)
    trigger = EventName.WORKFLOW_ASSISTANTS_DEPLOYED
    output: dict[str, object] = deployed.value
    while True:
        event = event_store.read(trigger, f"workflowId:{workflow_id}:objectKey:{output['objectKey']}")
        if isinstance(event, Failure):
            print(str(event))
            return 1
        processed = worker.process_step(event.value)
        if isinstance(processed, Failure):
            print(str(processed))
            return 1
        output = processed.value
        if output["completed"]:
            break
        trigger = EventName.WORKFLOW_STEP_PROCESSED

    latest = resolver.read_latest(workflow_id)
    if isinstance(latest, Failure):
        print(str(latest))
        return 1
    print(json.dumps(latest.value.to_json(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
