"""FastAPI dependencies that bridge HTTP requests to the auth foundation."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from ..auth import AuthenticatedPrincipal, ClaimsReader, authenticate_request


def get_claims_reader(request: Request) -> ClaimsReader:
    reader = getattr(request.app.state, "claims_reader", None)
    if reader is None:
        raise RuntimeError("Claims reader not initialized on application state.")
    return reader


ClaimsReaderDep = Annotated[ClaimsReader, Depends(get_claims_reader)]


async def get_current_principal(
    request: Request,
    reader: ClaimsReaderDep,
) -> AuthenticatedPrincipal:
    """Authenticate the request from its access and identity token headers."""

    principal = await authenticate_request(request.headers, reader)
    request.state.principal = principal
    return principal


CurrentPrincipal = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]


__all__ = [
    "ClaimsReaderDep",
    "CurrentPrincipal",
    "get_claims_reader",
    "get_current_principal",
]
