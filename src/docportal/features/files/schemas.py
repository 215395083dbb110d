"""Pydantic schemas for folder listings, manifests, and processing."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from docportal.common.schema import BaseSchema

Outcome = Literal["OK", "KO", "KO parcial"]


class FolderOut(BaseSchema):
    name: str
    path: str
    full_path: str


class FolderListing(BaseSchema):
    bucket: str
    prefix: str
    folders: list[FolderOut]


class FileOut(BaseSchema):
    name: str
    key: str
    size: int
    last_modified: datetime | None = None
    typology_code: str
    typology_description: str


class FileListing(BaseSchema):
    bucket: str
    prefix: str
    files: list[FileOut]


class ManifestDetailOut(BaseSchema):
    """Parsed manifest plus the grant context it was read under."""

    file_name: str
    key: str
    typology_code: str
    typology_description: str
    headers: list[str]
    rows: list[dict[str, str]]
    document_group_path: str


class ProcessFileRequest(BaseSchema):
    """Operator decision on one manifest.

    ``idSpool`` and ``tipoDocumento`` are accepted for client compatibility and
    only logged.
    """

    file_name: str = Field(min_length=1, max_length=1024)
    folder_path: str | None = None
    resultado: Outcome
    id_spool: str | None = None
    tipo_documento: str | None = None

    @field_validator("folder_path")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class DocumentFailureOut(BaseSchema):
    id: str
    reason: str


class ProcessingResultOut(BaseSchema):
    file_name: str
    resultado: Outcome
    source_key: str
    source_deleted: bool
    destination_key: str
    rows_total: int
    documents_moved: list[str]
    documents_failed: list[DocumentFailureOut]
    processed_by: str
    processed_at: str
    document_group_path: str


class DocumentExistsOut(BaseSchema):
    document_id: str
    exists: bool


__all__ = [
    "DocumentExistsOut",
    "DocumentFailureOut",
    "FileListing",
    "FileOut",
    "FolderListing",
    "FolderOut",
    "ManifestDetailOut",
    "Outcome",
    "ProcessFileRequest",
    "ProcessingResultOut",
]
