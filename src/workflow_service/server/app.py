"""FastAPI app factory.

Endpoints are thin wrappers over the application services. Service failures
are mapped onto HTTP status codes by kind.
"""

from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from workflow_service.config import ServiceSettings
from workflow_service.event_store.client import EventStoreClient
from workflow_service.event_store.tables import EventTable, FileEventTable
from workflow_service.result import Failure, FailureKind
from workflow_service.server.models import (
    CreateJobRequest,
    CreateJobResponse,
    DeployAssistantsRequest,
    SendQueryResponse,
    WorkflowSnapshotResponse,
)
from workflow_service.services import (
    CreateJobService,
    DeployAssistantsService,
    GetLatestWorkflowService,
    SendQueryRequest,
    SendQueryService,
)
from workflow_service.workflow.object_store import FileObjectStore, ObjectStore
from workflow_service.workflow.resolver import SnapshotResolver
from workflow_service.workflow.save_client import SaveWorkflowClient

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: dict[str, int] = {
    FailureKind.INVALID_ARGUMENTS.value: 400,
    FailureKind.NOT_FOUND.value: 404,
    FailureKind.DUPLICATE_WORKFLOW.value: 409,
    FailureKind.CORRUPTED.value: 422,
}


def failure_status(failure: Failure) -> int:
    return _STATUS_BY_KIND.get(failure.kind, 500)


def _raise_for_failure(failure: Failure) -> NoReturn:
    status = failure_status(failure)
    # Unexpected failures must not leak backend details.
    message = failure.kind if status < 500 else "Internal Server Error"
    raise HTTPException(status_code=status, detail=message)


def create_app(
    settings: ServiceSettings | None = None,
    *,
    event_table: EventTable | None = None,
    object_store: ObjectStore | None = None,
) -> FastAPI:
    settings = settings or ServiceSettings()

    app = FastAPI(
        title="AI Workflow Service",
        version="0.1.0",
        description="REST API for publishing workflow events and reading workflow state.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected request body", extra={"errors": exc.errors()})
        return JSONResponse(status_code=400, content={"message": "Bad Request"})

    event_store = EventStoreClient(event_table or FileEventTable(settings.event_store_dir))
    objects = object_store or FileObjectStore(settings.snapshot_store_dir)
    resolver = SnapshotResolver(objects, settings.bucket_name, settings.snapshot_prefix)
    save_client = SaveWorkflowClient(objects, settings.bucket_name, settings.snapshot_prefix)

    create_job_service = CreateJobService(event_store)
    send_query_service = SendQueryService(save_client, event_store)
    get_latest_service = GetLatestWorkflowService(resolver)
    deploy_service = DeployAssistantsService(resolver, save_client, event_store)

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/v1/jobs", status_code=201, response_model=CreateJobResponse)
    def create_job(req: CreateJobRequest) -> CreateJobResponse:
        result = create_job_service.create_job(req.jobId)
        if isinstance(result, Failure):
            _raise_for_failure(result)
        return CreateJobResponse.model_validate(result.value)

    @app.post("/api/v1/workflows", status_code=202, response_model=SendQueryResponse)
    def send_query(req: SendQueryRequest) -> SendQueryResponse:
        result = send_query_service.send_query(req)
        if isinstance(result, Failure):
            _raise_for_failure(result)
        return SendQueryResponse.model_validate(result.value)

    @app.get("/api/v1/workflows/{workflow_id}")
    def get_latest_workflow(workflow_id: str) -> dict[str, object]:
        result = get_latest_service.get_latest_workflow(workflow_id)
        if isinstance(result, Failure):
            _raise_for_failure(result)
        return result.value

    @app.post(
        "/api/v1/workflows/{workflow_id}/assistants",
        status_code=202,
        response_model=WorkflowSnapshotResponse,
    )
    def deploy_assistants(workflow_id: str, req: DeployAssistantsRequest) -> WorkflowSnapshotResponse:
        result = deploy_service.deploy(workflow_id, req.assistants)
        if isinstance(result, Failure):
            _raise_for_failure(result)
        return WorkflowSnapshotResponse.model_validate(result.value)

    return app
