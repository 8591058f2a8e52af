"""Write workflow snapshots. A key is written once and never overwritten."""

from __future__ import annotations

import json
import logging

from workflow_service.result import Failure, FailureKind, Success, make_failure, make_success
from workflow_service.workflow.models import Workflow
from workflow_service.workflow.object_store import ObjectStore, PreconditionFailed

_logger = logging.getLogger(__name__)


class SaveWorkflowClient:
    def __init__(
        self,
        object_store: ObjectStore,
        bucket_name: str | None,
        key_prefix: str = "",
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._object_store = object_store
        self._bucket_name = bucket_name
        self._key_prefix = key_prefix
        self._logger = logger or _logger

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    def save(self, workflow: Workflow, *, now: str | None = None) -> Success[str] | Failure:
        """Persist a snapshot and return its object key."""

        log_ctx = "SaveWorkflowClient.save"

        if not isinstance(workflow, Workflow):
            failure = make_failure(
                FailureKind.INVALID_ARGUMENTS, f"Expected Workflow but got {workflow!r}", False
            )
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure
        if not self._bucket_name:
            failure = make_failure(
                FailureKind.INVALID_ARGUMENTS, "Snapshot bucket name is not configured", False
            )
            self._logger.error(f"{log_ctx} exit failure", extra={"failure": str(failure)})
            return failure

        object_key = workflow.object_key(self._key_prefix, now)
        body = json.dumps(workflow.to_json(), indent=2, ensure_ascii=False) + "\n"
        try:
            self._object_store.put_object_if_absent(self._bucket_name, object_key, body)
        except PreconditionFailed as e:
            failure = make_failure(FailureKind.DUPLICATE_WORKFLOW, e, False)
            self._logger.warning(
                f"{log_ctx} exit failure",
                extra={"failure": str(failure), "object_key": object_key},
            )
            return failure
        except Exception as e:
            failure = make_failure(FailureKind.UNRECOGNIZED, e, True)
            self._logger.exception(
                f"{log_ctx} exit failure",
                extra={"failure": str(failure), "object_key": object_key},
            )
            return failure

        self._logger.info(
            f"{log_ctx} exit success",
            extra={"object_key": object_key, "workflow_id": workflow.workflowId},
        )
        return make_success(object_key)
