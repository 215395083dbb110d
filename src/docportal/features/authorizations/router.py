"""Routes for grant administration and the caller's own authorizations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, HTTPException, Path, Response, status

from docportal.api.deps import (
    AdminPrincipal,
    AuthorizationStoreDep,
    GrantSelectorDep,
    ResolverDep,
)
from docportal.core.http.dependencies import CurrentPrincipal

from .exceptions import (
    GrantConflictError,
    GrantSelectionRequiredError,
    GrantValidationError,
    NotAuthorizedError,
    UnknownGrantError,
)
from .schemas import (
    GrantCreate,
    GrantOut,
    GrantUpdate,
    GrantWithOwnerOut,
    MyAuthorizationsOut,
    PrincipalOut,
)

router = APIRouter(tags=["authorizations"])

GRANT_ID_PARAM = Annotated[int, Path(description="Authorization identifier.", ge=1)]
USERNAME_PARAM = Annotated[str, Path(description="Identity username.", min_length=1)]
GRANT_CREATE_BODY = Body(..., description="Owner, bucket, and folder to authorize.")
GRANT_UPDATE_BODY = Body(..., description="Fields to change on the authorization.")


@router.get(
    "/admin/authorizations",
    response_model=list[GrantWithOwnerOut],
    status_code=status.HTTP_200_OK,
    summary="List every authorization with its owner (administrator only)",
)
async def list_authorizations(
    _: AdminPrincipal,
    store: AuthorizationStoreDep,
) -> list[GrantWithOwnerOut]:
    grants = await store.list_all()
    return [GrantWithOwnerOut.from_grant(grant) for grant in grants]


@router.post(
    "/admin/authorizations",
    response_model=GrantOut,
    status_code=status.HTTP_201_CREATED,
    summary="Grant a user access to a bucket folder (administrator only)",
    responses={
        status.HTTP_409_CONFLICT: {"description": "Concurrent duplicate authorization."},
        status.HTTP_422_UNPROCESSABLE_CONTENT: {"description": "Blank owner, bucket, or folder."},
    },
)
async def create_authorization(
    _: AdminPrincipal,
    store: AuthorizationStoreDep,
    payload: GrantCreate = GRANT_CREATE_BODY,
) -> GrantOut:
    try:
        grant = await store.create_grant(
            payload.username,
            payload.bucket,
            payload.document_group_path,
        )
    except GrantValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except GrantConflictError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return GrantOut.model_validate(grant)


@router.patch(
    "/admin/authorizations/{grant_id}",
    response_model=GrantOut,
    status_code=status.HTTP_200_OK,
    summary="Update an authorization (administrator only)",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "Authorization not found."},
        status.HTTP_409_CONFLICT: {"description": "Update collides with another authorization."},
        status.HTTP_422_UNPROCESSABLE_CONTENT: {
            "description": "No valid fields were provided for update.",
        },
    },
)
async def update_authorization(
    _: AdminPrincipal,
    grant_id: GRANT_ID_PARAM,
    store: AuthorizationStoreDep,
    payload: GrantUpdate = GRANT_UPDATE_BODY,
) -> GrantOut:
    try:
        grant = await store.update_grant(grant_id, payload.to_changes())
    except GrantValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except UnknownGrantError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except GrantConflictError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return GrantOut.model_validate(grant)


@router.delete(
    "/admin/authorizations/{grant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an authorization (administrator only)",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Authorization not found."}},
)
async def delete_authorization(
    _: AdminPrincipal,
    grant_id: GRANT_ID_PARAM,
    store: AuthorizationStoreDep,
) -> Response:
    try:
        await store.delete_grant(grant_id)
    except UnknownGrantError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/admin/users/{username}/authorizations",
    response_model=list[GrantOut],
    status_code=status.HTTP_200_OK,
    summary="List one user's authorizations, active or not (administrator only)",
)
async def list_user_authorizations(
    _: AdminPrincipal,
    username: USERNAME_PARAM,
    store: AuthorizationStoreDep,
) -> list[GrantOut]:
    grants = await store.list_grants(username)
    return [GrantOut.model_validate(grant) for grant in grants]


@router.post(
    "/admin/users/{username}/authorizations/deactivate",
    response_model=GrantOut,
    status_code=status.HTTP_200_OK,
    summary="Deactivate a user's primary authorization (administrator only)",
    responses={status.HTTP_404_NOT_FOUND: {"description": "No active authorization."}},
)
async def deactivate_user_authorization(
    _: AdminPrincipal,
    username: USERNAME_PARAM,
    store: AuthorizationStoreDep,
) -> GrantOut:
    try:
        grant = await store.deactivate_grant(username)
    except UnknownGrantError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return GrantOut.model_validate(grant)


@router.get(
    "/me",
    response_model=PrincipalOut,
    status_code=status.HTTP_200_OK,
    summary="Describe the authenticated caller",
)
async def read_me(principal: CurrentPrincipal, resolver: ResolverDep) -> PrincipalOut:
    return PrincipalOut(
        username=principal.username,
        display_name=principal.display_name,
        email=principal.email,
        groups=list(principal.groups),
        roles=list(principal.roles),
        is_admin=await resolver.is_admin(principal.username),
    )


@router.get(
    "/me/authorizations",
    response_model=MyAuthorizationsOut,
    status_code=status.HTTP_200_OK,
    summary="List the caller's active authorizations and the one this request resolves to",
)
async def read_my_authorizations(
    principal: CurrentPrincipal,
    resolver: ResolverDep,
    selector: GrantSelectorDep,
) -> MyAuthorizationsOut:
    grants = await resolver.active_grants(principal.username)
    grants_out = [GrantOut.model_validate(grant) for grant in grants]
    try:
        resolved = await resolver.resolve_request(principal.username, selector=selector)
    except NotAuthorizedError:
        return MyAuthorizationsOut(grants=grants_out)
    except GrantSelectionRequiredError:
        return MyAuthorizationsOut(grants=grants_out, selection_required=True)
    return MyAuthorizationsOut(
        grants=grants_out,
        resolved=GrantOut.model_validate(resolved.grant),
    )


__all__ = ["router"]
