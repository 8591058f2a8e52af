from __future__ import annotations

import logging

from workflow_service.result import Failure, Success, make_success
from workflow_service.workflow.resolver import SnapshotResolver

_logger = logging.getLogger(__name__)


class GetLatestWorkflowService:
    def __init__(self, resolver: SnapshotResolver, *, logger: logging.Logger | None = None) -> None:
        self._resolver = resolver
        self._logger = logger or _logger

    def get_latest_workflow(self, workflow_id: str) -> Success[dict[str, object]] | Failure:
        resolved = self._resolver.read_latest(workflow_id)
        if isinstance(resolved, Failure):
            self._logger.info(
                "GetLatestWorkflowService.get_latest_workflow exit failure",
                extra={"failure": str(resolved), "workflow_id": workflow_id},
            )
            return resolved
        return make_success(resolved.value.to_json())
