"""Base interfaces for object storage gateways."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


class StorageError(Exception):
    """Raised when a storage gateway encounters an unrecoverable error."""


class ObjectNotFoundError(StorageError):
    """Raised when the addressed object does not exist."""

    def __init__(self, bucket: str, key: str) -> None:
        super().__init__(f"Object not found: s3://{bucket}/{key}")
        self.bucket = bucket
        self.key = key


class StorageTimeoutError(StorageError):
    """Raised when a storage call exceeds its configured timeout."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"Storage {operation} exceeded {timeout:.1f}s")
        self.operation = operation
        self.timeout = timeout


@dataclass(frozen=True, slots=True)
class ObjectEntry:
    """A direct child object under a listed prefix."""

    name: str
    key: str
    size: int
    last_modified: datetime | None = None


@dataclass(frozen=True, slots=True)
class FolderEntry:
    """A direct child pseudo-directory under a listed prefix.

    ``path`` has no trailing slash; ``full_path`` keeps it.
    """

    name: str
    path: str
    full_path: str


def folder_prefix(prefix: str) -> str:
    """Return ``prefix`` with exactly one trailing slash (empty stays empty)."""

    if not prefix:
        return ""
    return prefix.rstrip("/") + "/"


def key_basename(key: str) -> str:
    return key.rsplit("/", 1)[-1]


def is_direct_child(key: str, prefix: str) -> bool:
    """True when ``key`` sits directly under ``prefix`` and is not a folder marker."""

    if not key.startswith(prefix) or key.endswith("/"):
        return False
    remainder = key[len(prefix) :]
    return bool(remainder) and "/" not in remainder


class StorageGateway(ABC):
    """Async capability interface over a (bucket, key) object store."""

    @abstractmethod
    async def list_objects(self, bucket: str, prefix: str) -> list[ObjectEntry]:
        """Return direct child objects of ``prefix`` (non-recursive)."""

    @abstractmethod
    async def list_folders(self, bucket: str, prefix: str) -> list[FolderEntry]:
        """Return direct child folders of ``prefix``."""

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Return the object's bytes; raise ``ObjectNotFoundError`` if absent."""

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Create or overwrite an object."""

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> None:
        """Remove an object; raise ``ObjectNotFoundError`` if absent."""

    @abstractmethod
    async def exists(self, bucket: str, key: str) -> bool:
        """Return whether the object exists."""

    @abstractmethod
    async def copy(self, bucket: str, source_key: str, dest_key: str) -> None:
        """Copy within a bucket; raise ``ObjectNotFoundError`` if the source is absent."""

    async def move(self, bucket: str, source_key: str, dest_key: str) -> None:
        """Copy then delete. Not atomic: a failure after the copy leaves both objects."""

        await self.copy(bucket, source_key, dest_key)
        await self.delete(bucket, source_key)

    async def check_connection(self, bucket: str | None = None) -> None:
        """Raise ``StorageError`` if the backend is not reachable."""

    def close(self) -> None:
        """Release client resources."""


__all__ = [
    "FolderEntry",
    "ObjectEntry",
    "ObjectNotFoundError",
    "StorageError",
    "StorageGateway",
    "StorageTimeoutError",
    "folder_prefix",
    "is_direct_child",
    "key_basename",
]
