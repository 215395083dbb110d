"""Amazon S3 storage gateway (boto3)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docportal.common.logging import log_context

from .base import (
    FolderEntry,
    ObjectEntry,
    ObjectNotFoundError,
    StorageError,
    StorageGateway,
    StorageTimeoutError,
    folder_prefix,
    is_direct_child,
    key_basename,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchBucket"})


@dataclass(frozen=True, slots=True)
class S3Config:
    region: str | None
    endpoint_url: str | None
    request_timeout_seconds: float
    connect_timeout_seconds: float


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3Storage(StorageGateway):
    """Storage gateway backed by an S3-compatible endpoint.

    boto3 is synchronous; every call runs in a worker thread under
    ``asyncio.wait_for``. Reads (list, get, exists) retry once on timeout,
    writes (put, delete, copy) never retry.
    """

    def __init__(self, config: S3Config, *, client: Any | None = None) -> None:
        self._config = config
        if client is None:
            client = boto3.client(
                "s3",
                region_name=config.region,
                endpoint_url=config.endpoint_url,
                config=Config(
                    connect_timeout=config.connect_timeout_seconds,
                    read_timeout=config.request_timeout_seconds,
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            )
        self._client = client

    @property
    def config(self) -> S3Config:
        return self._config

    async def _call(
        self,
        operation: str,
        fn: Callable[[], T],
        *,
        idempotent: bool,
    ) -> T:
        timeout = self._config.request_timeout_seconds
        attempts = 2 if idempotent else 1
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(asyncio.to_thread(fn), timeout=timeout)
            except TimeoutError:
                if attempt < attempts:
                    logger.warning(
                        "storage.call.retry",
                        extra=log_context(operation=operation, attempt=attempt),
                    )
                    continue
                logger.error(
                    "storage.call.timeout",
                    extra=log_context(operation=operation, timeout_seconds=timeout),
                )
                raise StorageTimeoutError(operation, timeout) from None
        raise StorageTimeoutError(operation, timeout)  # pragma: no cover

    def _translate(self, exc: Exception, *, operation: str, bucket: str, key: str) -> StorageError:
        if isinstance(exc, ClientError) and _error_code(exc) in _NOT_FOUND_CODES:
            return ObjectNotFoundError(bucket, key)
        logger.error(
            "storage.call.failed",
            extra=log_context(bucket=bucket, key=key, operation=operation),
            exc_info=exc,
        )
        return StorageError(f"S3 {operation} failed for s3://{bucket}/{key}")

    async def check_connection(self, bucket: str | None = None) -> None:
        if not bucket:
            return

        def _head_bucket() -> None:
            self._client.head_bucket(Bucket=bucket)

        try:
            await self._call("head_bucket", _head_bucket, idempotent=True)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Bucket {bucket!r} is not accessible.") from exc

    async def list_objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        normalized = folder_prefix(prefix)

        def _list() -> list[ObjectEntry]:
            paginator = self._client.get_paginator("list_objects_v2")
            entries: list[ObjectEntry] = []
            for page in paginator.paginate(Bucket=bucket, Prefix=normalized, Delimiter="/"):
                for item in page.get("Contents", []) or []:
                    key = item["Key"]
                    if not is_direct_child(key, normalized):
                        continue
                    entries.append(
                        ObjectEntry(
                            name=key_basename(key),
                            key=key,
                            size=int(item.get("Size", 0)),
                            last_modified=item.get("LastModified"),
                        )
                    )
            return entries

        try:
            return await self._call("list_objects", _list, idempotent=True)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="list", bucket=bucket, key=normalized) from exc

    async def list_folders(self, bucket: str, prefix: str) -> list[FolderEntry]:
        normalized = folder_prefix(prefix)

        def _list() -> list[FolderEntry]:
            paginator = self._client.get_paginator("list_objects_v2")
            folders: list[FolderEntry] = []
            for page in paginator.paginate(Bucket=bucket, Prefix=normalized, Delimiter="/"):
                for item in page.get("CommonPrefixes", []) or []:
                    full_path = item["Prefix"]
                    path = full_path.rstrip("/")
                    name = path[len(normalized) :]
                    if not name:
                        continue
                    folders.append(FolderEntry(name=name, path=path, full_path=full_path))
            return folders

        try:
            return await self._call("list_folders", _list, idempotent=True)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="list", bucket=bucket, key=normalized) from exc

    async def get(self, bucket: str, key: str) -> bytes:
        def _get() -> bytes:
            response = self._client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()

        try:
            return await self._call("get_object", _get, idempotent=True)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="get", bucket=bucket, key=key) from exc

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type

        def _put() -> None:
            self._client.put_object(**params)

        try:
            await self._call("put_object", _put, idempotent=False)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="put", bucket=bucket, key=key) from exc

    async def exists(self, bucket: str, key: str) -> bool:
        def _head() -> bool:
            try:
                self._client.head_object(Bucket=bucket, Key=key)
            except ClientError as exc:
                if _error_code(exc) in _NOT_FOUND_CODES:
                    return False
                raise
            return True

        try:
            return await self._call("head_object", _head, idempotent=True)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="exists", bucket=bucket, key=key) from exc

    async def delete(self, bucket: str, key: str) -> None:
        # S3 deletes are silent for missing keys; surface not-found explicitly.
        if not await self.exists(bucket, key):
            raise ObjectNotFoundError(bucket, key)

        def _delete() -> None:
            self._client.delete_object(Bucket=bucket, Key=key)

        try:
            await self._call("delete_object", _delete, idempotent=False)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="delete", bucket=bucket, key=key) from exc

    async def copy(self, bucket: str, source_key: str, dest_key: str) -> None:
        def _copy() -> None:
            self._client.copy_object(
                Bucket=bucket,
                CopySource={"Bucket": bucket, "Key": source_key},
                Key=dest_key,
            )

        try:
            await self._call("copy_object", _copy, idempotent=False)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, operation="copy", bucket=bucket, key=source_key) from exc

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


__all__ = ["S3Config", "S3Storage"]
