"""Prefix-listable object storage for workflow snapshots.

Objects are addressed by `(bucket, key)`. Keys may contain `/`, which the file
backend maps onto nested directories.
"""

from __future__ import annotations

import os
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol


class NoSuchKey(Exception):
    def __init__(self, bucket: str, key: str) -> None:
        super().__init__(f"No such key in bucket {bucket!r}: {key!r}")
        self.bucket = bucket
        self.key = key


class PreconditionFailed(Exception):
    """Raised by `put_object_if_absent` when the key already exists."""

    def __init__(self, bucket: str, key: str) -> None:
        super().__init__(f"Object already exists in bucket {bucket!r}: {key!r}")
        self.bucket = bucket
        self.key = key


@dataclass(frozen=True, slots=True)
class ObjectSummary:
    # Listings from some stores can omit the key.
    key: str | None


class ObjectStore(Protocol):
    def list_objects(self, bucket: str, prefix: str) -> list[ObjectSummary]: ...

    def get_object(self, bucket: str, key: str) -> str: ...

    def put_object_if_absent(self, bucket: str, key: str, body: str) -> None: ...


class InMemoryObjectStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, dict[str, str]] = {}

    def list_objects(self, bucket: str, prefix: str) -> list[ObjectSummary]:
        with self._lock:
            objects = self._buckets.get(bucket, {})
            return [ObjectSummary(key=k) for k in objects if k.startswith(prefix)]

    def get_object(self, bucket: str, key: str) -> str:
        with self._lock:
            try:
                return self._buckets[bucket][key]
            except KeyError as e:
                raise NoSuchKey(bucket, key) from e

    def put_object_if_absent(self, bucket: str, key: str, body: str) -> None:
        with self._lock:
            objects = self._buckets.setdefault(bucket, {})
            if key in objects:
                raise PreconditionFailed(bucket, key)
            objects[key] = body


class FileObjectStore:
    """Buckets are directories under `root`; each object is one file.

    Listing returns whatever order the filesystem yields.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def _object_path(self, bucket: str, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not parts or key.startswith("/") or any(p in ("..", ".") for p in parts):
            raise ValueError(f"Invalid object key: {key!r}")
        return self._root / bucket / Path(*parts)

    def list_objects(self, bucket: str, prefix: str) -> list[ObjectSummary]:
        bucket_dir = self._root / bucket
        if not bucket_dir.is_dir():
            return []
        summaries: list[ObjectSummary] = []
        for dirpath, _dirnames, filenames in os.walk(bucket_dir):
            for name in filenames:
                if name.startswith("."):
                    continue
                key = (Path(dirpath) / name).relative_to(bucket_dir).as_posix()
                if key.startswith(prefix):
                    summaries.append(ObjectSummary(key=key))
        return summaries

    def get_object(self, bucket: str, key: str) -> str:
        path = self._object_path(bucket, key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NoSuchKey(bucket, key) from e

    def put_object_if_absent(self, bucket: str, key: str, body: str) -> None:
        path = self._object_path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        tmp.write_text(body, encoding="utf-8")
        try:
            os.link(tmp, path)
        except FileExistsError as e:
            raise PreconditionFailed(bucket, key) from e
        finally:
            tmp.unlink(missing_ok=True)
