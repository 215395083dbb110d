"""Manifest processing workflow.

One pass, no persisted intermediate state:

    fetch -> parse -> stamp -> serialize -> upload -> delete source
          -> per document: exists? -> move | record failure

Every manifest step is fatal: the first error aborts the run and nothing
after it is attempted. The source is deleted only after the destination
write returned. Document moves are isolated from one another; a failed or
missing document is recorded in the result and the run carries on.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from docportal.common.logging import log_context
from docportal.db import utc_now
from docportal.infra.storage import ObjectNotFoundError, StorageError, StorageGateway
from docportal.settings import Settings

from .exceptions import InvalidObjectNameError, ManifestEmptyError
from .manifest import (
    Stamp,
    document_ids,
    parse_manifest,
    plain_name,
    serialize_manifest,
    stamp_manifest,
)

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"
REASON_NOT_FOUND = "not found"
REASON_INVALID_ID = "invalid document id"


@dataclass(frozen=True, slots=True)
class StorageLayout:
    """Where manifests and documents live, and where they go when processed."""

    destination_prefix: str
    documents_prefix: str
    documents_archive_prefix: str
    document_column: str = "idDocumento"

    @classmethod
    def from_settings(cls, settings: Settings) -> StorageLayout:
        return cls(
            destination_prefix=settings.destination_prefix,
            documents_prefix=settings.documents_prefix,
            documents_archive_prefix=settings.documents_archive_prefix,
            document_column=settings.manifest_document_column,
        )

    def destination_key(self, file_name: str) -> str:
        return f"{self.destination_prefix}{file_name}"

    def document_key(self, document_id: str) -> str:
        return f"{self.documents_prefix}{document_id}"

    def archive_key(self, document_id: str) -> str:
        return f"{self.documents_archive_prefix}{document_id}"


@dataclass(frozen=True, slots=True)
class ProcessingRequest:
    bucket: str
    source_key: str
    file_name: str
    outcome: str
    operator_id: str
    operator_name: str


@dataclass(frozen=True, slots=True)
class DocumentFailure:
    id: str
    reason: str


@dataclass(slots=True)
class ProcessingResult:
    source_key: str
    destination_key: str
    rows_total: int
    processed_at: str
    processed_by: str
    outcome: str
    source_deleted: bool = False
    documents_moved: list[str] = field(default_factory=list)
    documents_failed: list[DocumentFailure] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.documents_failed)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ManifestWorkflow:
    """Run the manifest move and the per-document archive loop."""

    def __init__(
        self,
        storage: StorageGateway,
        layout: StorageLayout,
        *,
        document_concurrency: int = 1,
    ) -> None:
        self._storage = storage
        self._layout = layout
        self._concurrency = max(1, document_concurrency)

    async def run(
        self,
        request: ProcessingRequest,
        *,
        now: datetime | None = None,
    ) -> ProcessingResult:
        bucket = request.bucket
        source_key = request.source_key
        destination_key = self._layout.destination_key(request.file_name)
        context = log_context(username=request.operator_id, bucket=bucket, key=source_key)
        logger.info("processing.start", extra=context)

        data = await self._storage.get(bucket, source_key)
        manifest = parse_manifest(data)
        if not manifest.rows:
            raise ManifestEmptyError(source_key)

        processed_at = format_timestamp(now or utc_now())
        stamped = stamp_manifest(
            manifest,
            Stamp(
                outcome=request.outcome,
                operator_id=request.operator_id,
                operator_name=request.operator_name,
                timestamp=processed_at,
            ),
        )
        payload = serialize_manifest(stamped)

        await self._storage.put(bucket, destination_key, payload, content_type=CSV_CONTENT_TYPE)
        logger.info(
            "processing.manifest.uploaded",
            extra={**context, "destination_key": destination_key, "rows_total": len(stamped)},
        )
        await self._storage.delete(bucket, source_key)

        result = ProcessingResult(
            source_key=source_key,
            destination_key=destination_key,
            rows_total=len(stamped),
            processed_at=processed_at,
            processed_by=request.operator_name,
            outcome=request.outcome,
            source_deleted=True,
        )

        ids = document_ids(stamped.rows, self._layout.document_column)
        outcomes = await self._move_documents(bucket, ids)
        for document_id, reason in outcomes:
            if reason is None:
                result.documents_moved.append(document_id)
            else:
                result.documents_failed.append(DocumentFailure(id=document_id, reason=reason))

        level = logging.WARNING if result.is_partial else logging.INFO
        logger.log(
            level,
            "processing.complete",
            extra={
                **context,
                "destination_key": destination_key,
                "rows_total": result.rows_total,
                "documents_moved": len(result.documents_moved),
                "documents_failed": len(result.documents_failed),
            },
        )
        return result

    async def _move_documents(
        self,
        bucket: str,
        ids: list[str],
    ) -> list[tuple[str, str | None]]:
        if not ids:
            return []
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _bounded(document_id: str) -> tuple[str, str | None]:
            async with semaphore:
                return document_id, await self._move_document(bucket, document_id)

        return list(await asyncio.gather(*(_bounded(document_id) for document_id in ids)))

    async def _move_document(self, bucket: str, document_id: str) -> str | None:
        """Archive one document. Return ``None`` on success, else the failure reason.

        References must name a single object directly under the documents
        prefix; anything path-like is refused before storage is touched.
        """

        try:
            plain_name(document_id)
        except InvalidObjectNameError:
            logger.warning(
                "processing.document.failed",
                extra=log_context(
                    bucket=bucket,
                    document_id=document_id,
                    reason=REASON_INVALID_ID,
                ),
            )
            return REASON_INVALID_ID

        source = self._layout.document_key(document_id)
        target = self._layout.archive_key(document_id)
        step = "exists"
        try:
            if not await self._storage.exists(bucket, source):
                reason = REASON_NOT_FOUND
            else:
                step = "move"
                await self._storage.move(bucket, source, target)
                logger.debug(
                    "processing.document.moved",
                    extra=log_context(bucket=bucket, document_id=document_id, key=target),
                )
                return None
        except ObjectNotFoundError:
            reason = REASON_NOT_FOUND
        except StorageError as exc:
            reason = f"{step} failed"
            logger.warning(
                "processing.document.error",
                extra=log_context(
                    bucket=bucket,
                    document_id=document_id,
                    step=step,
                    error=str(exc),
                ),
            )

        logger.warning(
            "processing.document.failed",
            extra=log_context(bucket=bucket, document_id=document_id, reason=reason),
        )
        return reason


__all__ = [
    "DocumentFailure",
    "ManifestWorkflow",
    "ProcessingRequest",
    "ProcessingResult",
    "StorageLayout",
    "format_timestamp",
]
