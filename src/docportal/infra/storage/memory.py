"""In-process storage gateway for local development and tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from docportal.db import utc_now

from .base import (
    FolderEntry,
    ObjectEntry,
    ObjectNotFoundError,
    StorageGateway,
    folder_prefix,
    is_direct_child,
    key_basename,
)


@dataclass(slots=True)
class _StoredBlob:
    data: bytes
    content_type: str | None
    last_modified: datetime


class InMemoryStorage(StorageGateway):
    """Dict-backed gateway keyed by ``(bucket, key)``.

    Every method body runs without awaiting, so each call is atomic on the
    event loop.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], _StoredBlob] = {}

    def seed(self, bucket: str, key: str, data: bytes | str) -> None:
        """Synchronously place an object (fixtures, demo data)."""

        payload = data.encode("utf-8") if isinstance(data, str) else data
        self._objects[(bucket, key)] = _StoredBlob(payload, None, utc_now())

    def keys(self, bucket: str) -> list[str]:
        return sorted(key for (b, key) in self._objects if b == bucket)

    def content_type(self, bucket: str, key: str) -> str | None:
        blob = self._objects.get((bucket, key))
        return blob.content_type if blob is not None else None

    async def list_objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        normalized = folder_prefix(prefix)
        return [
            ObjectEntry(
                name=key_basename(key),
                key=key,
                size=len(blob.data),
                last_modified=blob.last_modified,
            )
            for (b, key), blob in sorted(self._objects.items(), key=lambda item: item[0])
            if b == bucket and is_direct_child(key, normalized)
        ]

    async def list_folders(self, bucket: str, prefix: str) -> list[FolderEntry]:
        normalized = folder_prefix(prefix)
        seen: dict[str, FolderEntry] = {}
        for b, key in sorted(self._objects):
            if b != bucket or not key.startswith(normalized):
                continue
            remainder = key[len(normalized) :]
            if "/" not in remainder:
                continue
            name = remainder.split("/", 1)[0]
            if not name or name in seen:
                continue
            path = f"{normalized}{name}"
            seen[name] = FolderEntry(name=name, path=path, full_path=f"{path}/")
        return list(seen.values())

    async def get(self, bucket: str, key: str) -> bytes:
        blob = self._objects.get((bucket, key))
        if blob is None:
            raise ObjectNotFoundError(bucket, key)
        return blob.data

    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        self._objects[(bucket, key)] = _StoredBlob(bytes(data), content_type, utc_now())

    async def delete(self, bucket: str, key: str) -> None:
        if (bucket, key) not in self._objects:
            raise ObjectNotFoundError(bucket, key)
        del self._objects[(bucket, key)]

    async def exists(self, bucket: str, key: str) -> bool:
        return (bucket, key) in self._objects

    async def copy(self, bucket: str, source_key: str, dest_key: str) -> None:
        blob = self._objects.get((bucket, source_key))
        if blob is None:
            raise ObjectNotFoundError(bucket, source_key)
        self._objects[(bucket, dest_key)] = _StoredBlob(blob.data, blob.content_type, utc_now())


__all__ = ["InMemoryStorage"]
