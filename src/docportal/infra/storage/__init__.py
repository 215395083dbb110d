"""Object storage gateways."""

from __future__ import annotations

from .base import (
    FolderEntry,
    ObjectEntry,
    ObjectNotFoundError,
    StorageError,
    StorageGateway,
    StorageTimeoutError,
    folder_prefix,
    key_basename,
)
from .factory import build_storage_gateway, get_storage_gateway, init_storage, shutdown_storage
from .memory import InMemoryStorage
from .s3 import S3Config, S3Storage

__all__ = [
    "FolderEntry",
    "InMemoryStorage",
    "ObjectEntry",
    "ObjectNotFoundError",
    "S3Config",
    "S3Storage",
    "StorageError",
    "StorageGateway",
    "StorageTimeoutError",
    "build_storage_gateway",
    "folder_prefix",
    "get_storage_gateway",
    "init_storage",
    "key_basename",
    "shutdown_storage",
]
