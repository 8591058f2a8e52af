from __future__ import annotations

import logging

from workflow_service.event_store.client import EventStoreClient
from workflow_service.events.definitions import JobCreatedEvent
from workflow_service.result import Failure, Success, make_success
from workflow_service.services.publishing import publish_event

_logger = logging.getLogger(__name__)


class CreateJobService:
    def __init__(
        self, event_store: EventStoreClient, *, logger: logging.Logger | None = None
    ) -> None:
        self._event_store = event_store
        self._logger = logger or _logger

    def create_job(self, job_id: str) -> Success[dict[str, object]] | Failure:
        log_ctx = "CreateJobService.create_job"

        published = publish_event(
            self._event_store, JobCreatedEvent, {"jobId": job_id, "created": True}, self._logger
        )
        if isinstance(published, Failure):
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(published)})
            return published

        self._logger.info(f"{log_ctx} exit success", extra={"job_id": job_id})
        return make_success({"jobId": job_id, "created": True})
