"""Administrative routes for portal identities."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Response, status

from docportal.api.deps import AdminPrincipal, get_identities_service

from .exceptions import IdentityExistsError, IdentityNotFoundError, IdentityValidationError
from .schemas import IdentityCreate, IdentityOut, IdentityUpdate
from .service import IdentitiesService

router = APIRouter(prefix="/admin/users", tags=["identities"])

IdentitiesServiceDep = Annotated[IdentitiesService, Depends(get_identities_service)]
USERNAME_PARAM = Annotated[
    str,
    Path(description="Identity username.", min_length=1, max_length=255),
]
IDENTITY_CREATE_BODY = Body(..., description="Identity to register.")
IDENTITY_UPDATE_BODY = Body(..., description="Flags to change on the identity.")


@router.get(
    "",
    response_model=list[IdentityOut],
    status_code=status.HTTP_200_OK,
    summary="List identities (administrator only)",
)
async def list_identities(
    _: AdminPrincipal,
    service: IdentitiesServiceDep,
) -> list[IdentityOut]:
    return await service.list_identities()


@router.post(
    "",
    response_model=IdentityOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register an identity (administrator only)",
    responses={
        status.HTTP_409_CONFLICT: {"description": "Identity already exists and is active."},
    },
)
async def create_identity(
    _: AdminPrincipal,
    service: IdentitiesServiceDep,
    payload: IdentityCreate = IDENTITY_CREATE_BODY,
) -> IdentityOut:
    try:
        return await service.create_identity(payload.username, is_admin=payload.is_admin)
    except IdentityExistsError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.get(
    "/{username}",
    response_model=IdentityOut,
    status_code=status.HTTP_200_OK,
    summary="Retrieve an identity (administrator only)",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Identity not found."}},
)
async def get_identity(
    _: AdminPrincipal,
    username: USERNAME_PARAM,
    service: IdentitiesServiceDep,
) -> IdentityOut:
    try:
        return await service.get_identity(username)
    except IdentityNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.patch(
    "/{username}",
    response_model=IdentityOut,
    status_code=status.HTTP_200_OK,
    summary="Update identity flags (administrator only)",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "Identity not found."},
        status.HTTP_422_UNPROCESSABLE_CONTENT: {
            "description": "No valid fields were provided for update.",
        },
    },
)
async def update_identity(
    _: AdminPrincipal,
    username: USERNAME_PARAM,
    service: IdentitiesServiceDep,
    payload: IdentityUpdate = IDENTITY_UPDATE_BODY,
) -> IdentityOut:
    try:
        return await service.update_identity(username, payload)
    except IdentityValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except IdentityNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete(
    "/{username}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an identity and its authorizations (administrator only)",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Identity not found."}},
)
async def delete_identity(
    _: AdminPrincipal,
    username: USERNAME_PARAM,
    service: IdentitiesServiceDep,
) -> Response:
    try:
        await service.delete_identity(username)
    except IdentityNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
