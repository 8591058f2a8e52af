"""CLI entrypoint for the workflow service.

Runs the same services as the REST API against the local file-backed stores.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from workflow_service import __version__
from workflow_service.config import ServiceSettings
from workflow_service.event_store.client import EventStoreClient
from workflow_service.event_store.tables import FileEventTable
from workflow_service.events.base import EventName
from workflow_service.llm.openai_provider import OpenAIProvider
from workflow_service.logging import configure_logging
from workflow_service.result import Failure, FailureKind, Success, is_failure_of_kind
from workflow_service.services import (
    CreateJobService,
    DeployAssistantsService,
    GetLatestWorkflowService,
    ProcessWorkflowStepService,
    SendQueryRequest,
    SendQueryService,
)
from workflow_service.workflow.object_store import FileObjectStore
from workflow_service.workflow.resolver import SnapshotResolver
from workflow_service.workflow.save_client import SaveWorkflowClient

logger = logging.getLogger(__name__)

_EXIT_CODE_BY_KIND: dict[str, int] = {
    FailureKind.INVALID_ARGUMENTS.value: 2,
    FailureKind.NOT_FOUND.value: 3,
}

# Events that schedule the next step, in lookup order.
_STEP_TRIGGER_EVENTS = (EventName.WORKFLOW_ASSISTANTS_DEPLOYED, EventName.WORKFLOW_STEP_PROCESSED)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-service",
        description="Publish workflow events and inspect workflow state",
    )
    parser.add_argument("--version", action="version", version=f"ai-workflow-service {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create_job = subparsers.add_parser("create-job", help="Publish a JobCreated event")
    create_job.add_argument("--job-id", required=True, help="Job identifier (at least 6 chars)")

    send_query = subparsers.add_parser("send-query", help="Start a workflow for a query")
    send_query.add_argument("--query", required=True, help="The user query")
    send_query.add_argument(
        "--prompt-enhance-rounds", type=int, default=1, help="Prompt enhancement rounds (1-10)"
    )
    send_query.add_argument(
        "--response-enhance-rounds", type=int, default=1, help="Response enhancement rounds (1-10)"
    )

    read_latest = subparsers.add_parser("read-latest", help="Print the latest workflow snapshot")
    read_latest.add_argument("--workflow-id", required=True, help="Workflow identifier")

    deploy = subparsers.add_parser(
        "deploy-assistants",
        help="Have the model design and deploy assistants for a created workflow",
    )
    deploy.add_argument("--workflow-id", required=True, help="Workflow identifier")
    deploy.add_argument(
        "--object-key", required=True, help="Snapshot key carried by the WorkflowCreated event"
    )

    process_step = subparsers.add_parser(
        "process-step",
        help="Run the pending step of the snapshot named by a previously published event",
    )
    process_step.add_argument("--workflow-id", required=True, help="Workflow identifier")
    process_step.add_argument(
        "--object-key", required=True, help="Snapshot key carried by the triggering event"
    )

    return parser


def _exit_code(failure: Failure) -> int:
    return _EXIT_CODE_BY_KIND.get(failure.kind, 1)


def _report(result: Success[object] | Failure) -> int:
    if isinstance(result, Failure):
        print(str(result), file=sys.stderr)
        return _exit_code(result)
    print(json.dumps(result.value, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ServiceSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    event_store = EventStoreClient(FileEventTable(settings.event_store_dir))
    objects = FileObjectStore(settings.snapshot_store_dir)
    resolver = SnapshotResolver(objects, settings.bucket_name, settings.snapshot_prefix)
    save_client = SaveWorkflowClient(objects, settings.bucket_name, settings.snapshot_prefix)

    try:
        if args.command == "create-job":
            return _report(CreateJobService(event_store).create_job(args.job_id))

        if args.command == "send-query":
            request = SendQueryRequest.from_props(
                {
                    "query": args.query,
                    "promptEnhanceRounds": args.prompt_enhance_rounds,
                    "responseEnhanceRounds": args.response_enhance_rounds,
                }
            )
            if isinstance(request, Failure):
                return _report(request)
            return _report(SendQueryService(save_client, event_store).send_query(request.value))

        if args.command == "read-latest":
            return _report(GetLatestWorkflowService(resolver).get_latest_workflow(args.workflow_id))

        if args.command == "deploy-assistants":
            event = event_store.read(
                EventName.WORKFLOW_CREATED,
                f"workflowId:{args.workflow_id}:objectKey:{args.object_key}",
            )
            if isinstance(event, Failure):
                return _report(event)

            service = DeployAssistantsService(
                resolver, save_client, event_store, llm=OpenAIProvider(settings)
            )
            return _report(service.deploy_from_event(event.value))

        if args.command == "process-step":
            idempotency_key = f"workflowId:{args.workflow_id}:objectKey:{args.object_key}"
            for event_name in _STEP_TRIGGER_EVENTS:
                event = event_store.read(event_name, idempotency_key)
                if not is_failure_of_kind(event, FailureKind.NOT_FOUND):
                    break
            if isinstance(event, Failure):
                return _report(event)

            service = ProcessWorkflowStepService(
                resolver, OpenAIProvider(settings), save_client, event_store
            )
            return _report(service.process_step(event.value))

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
