"""Domain exceptions for manifest browsing and processing."""

from __future__ import annotations


class ManifestParseError(Exception):
    """Raised when manifest bytes cannot be decoded into rows."""


class ManifestEmptyError(Exception):
    """Raised when a manifest has a header row but no data rows."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Manifest {key} has no rows to process")
        self.key = key


class InvalidObjectNameError(Exception):
    """Raised when a caller-supplied file or document name is not a plain name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid object name: {name!r}")
        self.name = name


class ManifestLeaseConflictError(Exception):
    """Raised when another request is already processing the same manifest."""

    def __init__(self, bucket: str, key: str) -> None:
        super().__init__(f"Manifest {key} is already being processed")
        self.bucket = bucket
        self.key = key


__all__ = [
    "InvalidObjectNameError",
    "ManifestEmptyError",
    "ManifestLeaseConflictError",
    "ManifestParseError",
]
