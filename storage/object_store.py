"""Object store adapters: S3 (boto3) and an in-memory store."""

from __future__ import annotations

from threading import Lock
from typing import Any, Dict, Iterator, List, Optional
import logging

from botocore.exceptions import BotoCoreError, ClientError

from utils.exceptions import ObjectNotFoundError, StorageError


logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str((getattr(exc, "response", None) or {}).get("Error", {}).get("Code") or "")


class BaseObjectStore:
    """Storage collaborator consumed by the pipeline core."""

    provider = "base"

    def list_prefixes(self, prefix: str, delimiter: str = "/") -> Iterator[str]:
        """Yield every child prefix under ``prefix``, exhausting all pages."""
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        """True when the object exists. Never raises for a missing object."""
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        """Object bytes, or ObjectNotFoundError."""
        raise NotImplementedError

    def put(self, key: str, data: bytes, content_type: str) -> None:
        raise NotImplementedError


class S3ObjectStore(BaseObjectStore):
    """S3 bucket adapter."""

    provider = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        client: Optional[Any] = None,
        page_size: int = 1000,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.page_size = max(1, int(page_size))
        self._client = client

    def _get_client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def list_prefixes(self, prefix: str, delimiter: str = "/") -> Iterator[str]:
        paginator = self._get_client().get_paginator("list_objects_v2")
        pages = 0
        try:
            for page in paginator.paginate(
                Bucket=self.bucket,
                Prefix=prefix,
                Delimiter=delimiter,
                PaginationConfig={"PageSize": self.page_size},
            ):
                pages += 1
                for item in page.get("CommonPrefixes") or []:
                    value = str(item.get("Prefix") or "")
                    if value:
                        yield value
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"s3 list failed after {pages} page(s): {exc}", key=prefix) from exc
        logger.debug("s3_list_complete prefix=%s pages=%s", prefix, pages)

    def exists(self, key: str) -> bool:
        try:
            self._get_client().head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"s3 head failed: {exc}", key=key) from exc
        except BotoCoreError as exc:
            raise StorageError(f"s3 head failed: {exc}", key=key) from exc

    def get(self, key: str) -> bytes:
        try:
            response = self._get_client().get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"object not found: {key}", key=key) from exc
            raise StorageError(f"s3 get failed: {exc}", key=key) from exc
        except BotoCoreError as exc:
            raise StorageError(f"s3 get failed: {exc}", key=key) from exc

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._get_client().put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"s3 put failed: {exc}", key=key) from exc


class InMemoryObjectStore(BaseObjectStore):
    """Dict-backed store with paged listings."""

    provider = "memory"

    def __init__(self, objects: Optional[Dict[str, bytes]] = None, *, page_size: int = 1000) -> None:
        self._objects: Dict[str, bytes] = dict(objects or {})
        self._content_types: Dict[str, str] = {}
        self.page_size = max(1, int(page_size))
        self.pages_served = 0
        self._lock = Lock()

    def _child_prefixes(self, prefix: str, delimiter: str) -> List[str]:
        found = set()
        with self._lock:
            keys = list(self._objects)
        for key in keys:
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter in rest:
                found.add(prefix + rest.split(delimiter, 1)[0] + delimiter)
        return sorted(found)

    def list_prefixes(self, prefix: str, delimiter: str = "/") -> Iterator[str]:
        children = self._child_prefixes(prefix, delimiter)
        for start in range(0, len(children), self.page_size):
            self.pages_served += 1
            for value in children[start:start + self.page_size]:
                yield value

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def get(self, key: str) -> bytes:
        with self._lock:
            if key not in self._objects:
                raise ObjectNotFoundError(f"object not found: {key}", key=key)
            return self._objects[key]

    def put(self, key: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self._objects[key] = bytes(data)
            self._content_types[key] = content_type

    def content_type(self, key: str) -> Optional[str]:
        with self._lock:
            return self._content_types.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._objects)
