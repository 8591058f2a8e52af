"""Resolve the current state of a workflow from its snapshots."""

from __future__ import annotations

import json
import logging

from workflow_service.result import Failure, FailureKind, Success, make_failure, make_success
from workflow_service.workflow.models import Workflow
from workflow_service.workflow.object_store import NoSuchKey, ObjectStore

_logger = logging.getLogger(__name__)


def snapshot_prefix(workflow_id: str, key_prefix: str = "") -> str:
    """Listing prefix for one workflow.

    The trailing slash keeps `wf1` from matching the snapshots of `wf10`.
    """

    base = key_prefix.strip("/")
    return f"{base}/{workflow_id}/" if base else f"{workflow_id}/"


class SnapshotResolver:
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

    def read_latest(self, workflow_id: str) -> Success[Workflow] | Failure:
        log_ctx = "SnapshotResolver.read_latest"

        if not isinstance(workflow_id, str) or not workflow_id.strip():
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.INVALID_ARGUMENTS, f"Invalid workflowId {workflow_id!r}", False
                ),
            )
        if not self._bucket_name:
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.INVALID_ARGUMENTS, "Snapshot bucket name is not configured", False
                ),
            )

        prefix = snapshot_prefix(workflow_id, self._key_prefix)
        try:
            listing = self._object_store.list_objects(self._bucket_name, prefix)
        except Exception as e:
            failure = make_failure(FailureKind.UNRECOGNIZED, e, True)
            self._logger.exception(
                f"{log_ctx} exit failure", extra={"failure": str(failure), "prefix": prefix}
            )
            return failure

        if not listing:
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.NOT_FOUND, f"No snapshots found for workflow {workflow_id!r}", False
                ),
            )

        keys = [entry.key for entry in listing if entry.key]
        if not keys:
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.NOT_FOUND,
                    f"Snapshot listing for workflow {workflow_id!r} carries no object keys",
                    False,
                ),
            )

        # Listing order is not guaranteed by every store.
        return self.read(max(keys))

    def read(self, object_key: str) -> Success[Workflow] | Failure:
        """Load and validate the snapshot stored at an exact key."""

        log_ctx = "SnapshotResolver.read"

        if not self._bucket_name:
            return self._fail(
                log_ctx,
                make_failure(
                    FailureKind.INVALID_ARGUMENTS, "Snapshot bucket name is not configured", False
                ),
            )

        try:
            body = self._object_store.get_object(self._bucket_name, object_key)
        except NoSuchKey as e:
            return self._fail(log_ctx, make_failure(FailureKind.NOT_FOUND, e, False))
        except Exception as e:
            failure = make_failure(FailureKind.UNRECOGNIZED, e, True)
            self._logger.exception(
                f"{log_ctx} exit failure", extra={"failure": str(failure), "object_key": object_key}
            )
            return failure

        if not body or not body.strip():
            return self._fail(
                log_ctx,
                make_failure(FailureKind.CORRUPTED, f"Empty snapshot at {object_key!r}", False),
            )

        try:
            props = json.loads(body)
        except json.JSONDecodeError as e:
            return self._fail(log_ctx, make_failure(FailureKind.CORRUPTED, e, False))

        parsed = Workflow.from_props(props)
        if isinstance(parsed, Failure):
            return self._fail(
                log_ctx, make_failure(FailureKind.CORRUPTED, parsed.detail, False)
            )

        self._logger.info(
            f"{log_ctx} exit success",
            extra={"object_key": object_key, "workflow_id": parsed.value.workflowId},
        )
        return make_success(parsed.value)

    def _fail(self, log_ctx: str, failure: Failure) -> Failure:
        self._logger.error(
            f"{log_ctx} exit failure",
            extra={"failure": str(failure), "kind": failure.kind, "transient": failure.transient},
        )
        return failure
