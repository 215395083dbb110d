"""Login proxy route."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, status

from docportal.api.deps import get_login_service

from .exceptions import IdentityProviderError, LoginNotConfiguredError, LoginRejectedError
from .schemas import LoginRequest, LoginResponse
from .service import LoginService

router = APIRouter(prefix="/auth", tags=["auth"])

LOGIN_BODY = Body(..., description="Identity-provider credentials.")


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Exchange credentials for identity-provider tokens",
    responses={
        status.HTTP_401_UNAUTHORIZED: {"description": "Credentials rejected."},
        status.HTTP_502_BAD_GATEWAY: {"description": "Identity provider failure."},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Login is not configured."},
    },
)
async def login(
    service: Annotated[LoginService, Depends(get_login_service)],
    payload: LoginRequest = LOGIN_BODY,
) -> LoginResponse:
    try:
        return await service.login(payload.username, payload.password.get_secret_value())
    except LoginRejectedError as exc:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except IdentityProviderError as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except LoginNotConfiguredError as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


__all__ = ["router"]
