"""Routes for browsing grant-scoped folders and processing manifests."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status

from docportal.api.deps import RequestAuthorizationDep, get_files_service
from docportal.features.authorizations.store import normalize_group_path

from .exceptions import (
    InvalidObjectNameError,
    ManifestEmptyError,
    ManifestLeaseConflictError,
    ManifestParseError,
)
from .schemas import (
    DocumentExistsOut,
    FileListing,
    FolderListing,
    ManifestDetailOut,
    ProcessFileRequest,
    ProcessingResultOut,
)
from .service import FilesService

router = APIRouter(tags=["files"])

FilesServiceDep = Annotated[FilesService, Depends(get_files_service)]
FOLDER_QUERY = Annotated[
    str | None,
    Query(description="Folder path inside the caller's authorized document group."),
]
FILE_NAME_PARAM = Annotated[str, Path(description="Manifest file name.", min_length=1)]
DOCUMENT_ID_PARAM = Annotated[str, Path(description="Document identifier.", min_length=1)]
PROCESS_BODY = Body(..., description="Outcome to stamp on the manifest.")


def _folder(value: str | None) -> str | None:
    if value is None:
        return None
    return normalize_group_path(value) or None


@router.get(
    "/folders",
    response_model=FolderListing,
    status_code=status.HTTP_200_OK,
    summary="List direct child folders inside the caller's authorized scope",
)
async def list_folders(
    auth: RequestAuthorizationDep,
    service: FilesServiceDep,
    folder: FOLDER_QUERY = None,
) -> FolderListing:
    target = _folder(folder)
    resolved = await auth.resolve(target)
    return await service.list_folders(resolved.grant, target)


@router.get(
    "/files",
    response_model=FileListing,
    status_code=status.HTTP_200_OK,
    summary="List manifest files the caller may review",
)
async def list_files(
    auth: RequestAuthorizationDep,
    service: FilesServiceDep,
    folder: FOLDER_QUERY = None,
) -> FileListing:
    target = _folder(folder)
    resolved = await auth.resolve(target)
    return await service.list_files(resolved.grant, target)


@router.post(
    "/files/process",
    response_model=ProcessingResultOut,
    status_code=status.HTTP_200_OK,
    summary="Stamp a manifest, move it to the results folder, and archive its documents",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "Manifest not found."},
        status.HTTP_409_CONFLICT: {"description": "Manifest is already being processed."},
        status.HTTP_422_UNPROCESSABLE_CONTENT: {"description": "Manifest is empty or malformed."},
    },
)
async def process_file(
    auth: RequestAuthorizationDep,
    service: FilesServiceDep,
    payload: ProcessFileRequest = PROCESS_BODY,
) -> ProcessingResultOut:
    target = _folder(payload.folder_path)
    resolved = await auth.resolve(target)
    principal = auth.principal
    try:
        return await service.process(
            resolved.grant,
            payload.model_copy(update={"folder_path": target}),
            operator_id=principal.username,
            operator_name=principal.display_name or principal.username,
        )
    except (InvalidObjectNameError, ManifestEmptyError, ManifestParseError) as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except ManifestLeaseConflictError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.get(
    "/files/{file_name}",
    response_model=ManifestDetailOut,
    status_code=status.HTTP_200_OK,
    summary="Read and parse one manifest",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Manifest not found."}},
)
async def get_file(
    file_name: FILE_NAME_PARAM,
    auth: RequestAuthorizationDep,
    service: FilesServiceDep,
    folder: FOLDER_QUERY = None,
) -> ManifestDetailOut:
    target = _folder(folder)
    resolved = await auth.resolve(target)
    try:
        return await service.get_manifest(resolved.grant, file_name, target)
    except (InvalidObjectNameError, ManifestParseError) as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc


@router.get(
    "/documents/{document_id}/exists",
    response_model=DocumentExistsOut,
    status_code=status.HTTP_200_OK,
    summary="Check whether a document is present in the caller's bucket",
)
async def document_exists(
    document_id: DOCUMENT_ID_PARAM,
    auth: RequestAuthorizationDep,
    service: FilesServiceDep,
) -> DocumentExistsOut:
    resolved = await auth.resolve()
    try:
        return await service.document_exists(resolved.grant, document_id)
    except InvalidObjectNameError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc


@router.get(
    "/documents/{document_id}",
    response_class=Response,
    status_code=status.HTTP_200_OK,
    summary="Download a document",
    responses={
        status.HTTP_200_OK: {"content": {"application/octet-stream": {}}},
        status.HTTP_404_NOT_FOUND: {"description": "Document not found."},
    },
)
async def download_document(
    document_id: DOCUMENT_ID_PARAM,
    auth: RequestAuthorizationDep,
    service: FilesServiceDep,
) -> Response:
    resolved = await auth.resolve()
    try:
        name, data = await service.download_document(resolved.grant, document_id)
    except InvalidObjectNameError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


__all__ = ["router"]
