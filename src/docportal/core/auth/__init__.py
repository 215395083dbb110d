"""Authentication primitives."""

from .claims import (
    ClaimsReader,
    JwksClaimsReader,
    TokenClaims,
    UnverifiedClaimsReader,
    build_claims_reader,
)
from .errors import AdminRequiredError, AuthenticationError, PermissionDeniedError
from .pipeline import authenticate_request, authenticate_tokens
from .principal import AuthenticatedPrincipal

__all__ = [
    "AdminRequiredError",
    "AuthenticatedPrincipal",
    "AuthenticationError",
    "ClaimsReader",
    "JwksClaimsReader",
    "PermissionDeniedError",
    "TokenClaims",
    "UnverifiedClaimsReader",
    "authenticate_request",
    "authenticate_tokens",
    "build_claims_reader",
]
