"""Grant-scoped folder browsing, manifest reads, and processing."""

from __future__ import annotations

import logging

from docportal.common.logging import log_context
from docportal.features.authorizations.exceptions import ScopeDeniedError
from docportal.features.authorizations.scope import check_typology
from docportal.features.authorizations.typologies import Typology, classify_filename
from docportal.infra.storage import StorageGateway, folder_prefix
from docportal.models import Grant
from docportal.settings import Settings

from .exceptions import InvalidObjectNameError
from .leases import ProcessingLeases
from .manifest import parse_manifest, plain_name
from .schemas import (
    DocumentExistsOut,
    DocumentFailureOut,
    FileListing,
    FileOut,
    FolderListing,
    FolderOut,
    ManifestDetailOut,
    ProcessFileRequest,
    ProcessingResultOut,
)
from .workflow import ManifestWorkflow, ProcessingRequest, StorageLayout

logger = logging.getLogger(__name__)


class FilesService:
    """Storage operations on behalf of a caller whose grant is already resolved.

    When a folder is supplied the resolver has already checked it against the
    grant. Without one, manifests are read from the configured source prefix
    and each file name must pass the grant's typology check.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        storage: StorageGateway,
        leases: ProcessingLeases,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self._leases = leases
        self._layout = StorageLayout.from_settings(settings)

    # ---- listings ---------------------------------------------------------

    async def list_folders(self, grant: Grant, folder: str | None = None) -> FolderListing:
        prefix = folder_prefix(folder or grant.document_group_path)
        entries = await self._storage.list_folders(grant.bucket, prefix)
        return FolderListing(
            bucket=grant.bucket,
            prefix=prefix,
            folders=[
                FolderOut(name=entry.name, path=entry.path, full_path=entry.full_path)
                for entry in entries
            ],
        )

    async def list_files(self, grant: Grant, folder: str | None = None) -> FileListing:
        prefix = folder_prefix(folder) if folder else self._settings.source_prefix
        entries = await self._storage.list_objects(grant.bucket, prefix)

        files: list[FileOut] = []
        for entry in entries:
            if not self._is_manifest(entry.name):
                continue
            if folder:
                typology = classify_filename(entry.name)
            else:
                decision, typology = check_typology(grant, entry.name)
                if not decision:
                    continue
            files.append(
                FileOut(
                    name=entry.name,
                    key=entry.key,
                    size=entry.size,
                    last_modified=entry.last_modified,
                    typology_code=typology.code,
                    typology_description=typology.description,
                )
            )

        logger.debug(
            "files.list",
            extra=log_context(
                bucket=grant.bucket,
                prefix=prefix,
                listed=len(entries),
                returned=len(files),
            ),
        )
        return FileListing(bucket=grant.bucket, prefix=prefix, files=files)

    # ---- manifests --------------------------------------------------------

    async def get_manifest(
        self,
        grant: Grant,
        file_name: str,
        folder: str | None = None,
    ) -> ManifestDetailOut:
        name = plain_name(file_name)
        key, typology = self._locate_manifest(grant, name, folder)
        manifest = parse_manifest(await self._storage.get(grant.bucket, key))
        return ManifestDetailOut(
            file_name=name,
            key=key,
            typology_code=typology.code,
            typology_description=typology.description,
            headers=manifest.headers,
            rows=manifest.rows,
            document_group_path=grant.document_group_path,
        )

    async def process(
        self,
        grant: Grant,
        payload: ProcessFileRequest,
        *,
        operator_id: str,
        operator_name: str,
    ) -> ProcessingResultOut:
        name = plain_name(payload.file_name)
        key, typology = self._locate_manifest(grant, name, payload.folder_path)
        logger.info(
            "processing.requested",
            extra=log_context(
                username=operator_id,
                bucket=grant.bucket,
                key=key,
                grant_id=grant.id,
                outcome=payload.resultado,
                typology=typology.code,
                id_spool=payload.id_spool,
                tipo_documento=payload.tipo_documento,
            ),
        )

        workflow = ManifestWorkflow(
            self._storage,
            self._layout,
            document_concurrency=self._settings.processing_document_concurrency,
        )
        async with self._leases.hold(grant.bucket, key, holder=operator_id):
            result = await workflow.run(
                ProcessingRequest(
                    bucket=grant.bucket,
                    source_key=key,
                    file_name=name,
                    outcome=payload.resultado,
                    operator_id=operator_id,
                    operator_name=operator_name,
                )
            )

        return ProcessingResultOut(
            file_name=name,
            resultado=payload.resultado,
            source_key=result.source_key,
            source_deleted=result.source_deleted,
            destination_key=result.destination_key,
            rows_total=result.rows_total,
            documents_moved=result.documents_moved,
            documents_failed=[
                DocumentFailureOut(id=failure.id, reason=failure.reason)
                for failure in result.documents_failed
            ],
            processed_by=result.processed_by,
            processed_at=result.processed_at,
            document_group_path=grant.document_group_path,
        )

    # ---- documents --------------------------------------------------------

    async def document_exists(self, grant: Grant, document_id: str) -> DocumentExistsOut:
        name = plain_name(document_id)
        exists = await self._storage.exists(grant.bucket, self._layout.document_key(name))
        return DocumentExistsOut(document_id=name, exists=exists)

    async def download_document(self, grant: Grant, document_id: str) -> tuple[str, bytes]:
        name = plain_name(document_id)
        data = await self._storage.get(grant.bucket, self._layout.document_key(name))
        logger.info(
            "documents.download",
            extra=log_context(bucket=grant.bucket, document_id=name, size=len(data)),
        )
        return name, data

    # ---- helpers ----------------------------------------------------------

    def _is_manifest(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered.endswith(ext) for ext in self._settings.manifest_extensions)

    def _locate_manifest(
        self,
        grant: Grant,
        name: str,
        folder: str | None,
    ) -> tuple[str, Typology]:
        if not self._is_manifest(name):
            raise InvalidObjectNameError(name)
        if folder:
            return f"{folder_prefix(folder)}{name}", classify_filename(name)

        decision, typology = check_typology(grant, name)
        if not decision:
            raise ScopeDeniedError(decision.reason or "Forbidden")
        return f"{self._settings.source_prefix}{name}", typology


__all__ = ["FilesService"]
