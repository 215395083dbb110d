"""Request authentication pipeline used by FastAPI dependencies."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from docportal.common.logging import log_context

from .claims import ClaimsReader, TokenClaims
from .errors import (
    AUTH_REQUIRED,
    INCONSISTENT_TOKENS,
    INVALID_TOKEN,
    AuthenticationError,
)
from .principal import AuthenticatedPrincipal

logger = logging.getLogger(__name__)

ID_TOKEN_HEADER = "x-id-token"


def _strip_bearer(value: str | None) -> str | None:
    if not value:
        return None
    candidate = value.strip()
    scheme, _, credentials = candidate.partition(" ")
    if credentials and scheme.lower() == "bearer":
        candidate = credentials.strip()
    return candidate or None


def extract_tokens(headers: Mapping[str, str]) -> tuple[str | None, str | None]:
    """Return ``(access_token, id_token)`` from request headers."""

    authorization = headers.get("authorization")
    access_token = None
    if authorization:
        scheme, _, credentials = authorization.strip().partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            access_token = credentials.strip()
    return access_token, _strip_bearer(headers.get(ID_TOKEN_HEADER))


async def authenticate_tokens(
    reader: ClaimsReader,
    access_token: str | None,
    id_token: str | None,
) -> AuthenticatedPrincipal:
    """Validate the access/identity token pair and build the principal.

    Order: both present, both decode, same username, neither expired.
    """

    if not access_token or not id_token:
        raise AuthenticationError(AUTH_REQUIRED, reason="missing")

    access_claims, id_claims = await asyncio.gather(
        asyncio.to_thread(reader.decode, access_token),
        asyncio.to_thread(reader.decode, id_token),
    )
    if access_claims is None or id_claims is None:
        raise AuthenticationError(INVALID_TOKEN, reason="invalid")

    if access_claims.username != id_claims.username:
        logger.warning(
            "auth.tokens.inconsistent",
            extra=log_context(username=access_claims.username),
        )
        raise AuthenticationError(INCONSISTENT_TOKENS, reason="inconsistent")

    if access_claims.is_expired(leeway=reader.leeway) or id_claims.is_expired(
        leeway=reader.leeway
    ):
        raise AuthenticationError(INVALID_TOKEN, reason="expired")

    return _principal_from_claims(access_claims, id_claims)


async def authenticate_request(
    headers: Mapping[str, str],
    reader: ClaimsReader,
) -> AuthenticatedPrincipal:
    access_token, id_token = extract_tokens(headers)
    return await authenticate_tokens(reader, access_token, id_token)


def _principal_from_claims(access: TokenClaims, identity: TokenClaims) -> AuthenticatedPrincipal:
    groups = tuple(dict.fromkeys((*identity.groups, *access.groups)))
    roles = tuple(dict.fromkeys((*identity.roles, *access.roles)))
    return AuthenticatedPrincipal(
        username=identity.username,
        display_name=identity.display_name,
        email=identity.email,
        subject=identity.subject or access.subject,
        groups=groups,
        roles=roles,
    )


__all__ = [
    "ID_TOKEN_HEADER",
    "authenticate_request",
    "authenticate_tokens",
    "extract_tokens",
]
