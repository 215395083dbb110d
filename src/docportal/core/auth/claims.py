"""Bearer token claim readers.

Two readers share one contract: ``decode`` returns ``TokenClaims`` or ``None``
and never raises; ``is_expired`` returns ``True`` for anything it cannot
decode. ``JwksClaimsReader`` verifies signatures against the issuer's key
set. ``UnverifiedClaimsReader`` only parses the payload and is meant for
deployments where trust is established upstream.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import jwt
from jwt import PyJWKClient

from docportal.settings import Settings

logger = logging.getLogger(__name__)

USERNAME_CLAIMS: tuple[str, ...] = ("cognito:username", "username", "preferred_username")


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if str(item))
    return ()


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Claims the portal relies on, extracted from a decoded token payload."""

    username: str
    subject: str | None
    display_name: str
    email: str | None
    expires_at: int | None
    groups: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    client_id: str | None = None
    token_use: str | None = None
    auth_time: int | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TokenClaims | None:
        username = next(
            (
                str(payload[name]).strip()
                for name in USERNAME_CLAIMS
                if isinstance(payload.get(name), str) and payload[name].strip()
            ),
            None,
        )
        if username is None:
            return None
        display_name = payload.get("name")
        return cls(
            username=username,
            subject=payload.get("sub") if isinstance(payload.get("sub"), str) else None,
            display_name=display_name if isinstance(display_name, str) and display_name else username,
            email=payload.get("email") if isinstance(payload.get("email"), str) else None,
            expires_at=_as_int(payload.get("exp")),
            groups=_as_str_tuple(payload.get("cognito:groups")),
            roles=_as_str_tuple(payload.get("custom:roles")),
            client_id=payload.get("client_id") if isinstance(payload.get("client_id"), str) else None,
            token_use=payload.get("token_use") if isinstance(payload.get("token_use"), str) else None,
            auth_time=_as_int(payload.get("auth_time")),
            raw=dict(payload),
        )

    def is_expired(self, *, now: float | None = None, leeway: int = 0) -> bool:
        if self.expires_at is None:
            return True
        current = time.time() if now is None else now
        return current > self.expires_at + leeway


@runtime_checkable
class ClaimsReader(Protocol):
    """Decode bearer tokens into claims."""

    leeway: int

    def decode(self, token: str) -> TokenClaims | None: ...

    def is_expired(self, token: str) -> bool: ...


class UnverifiedClaimsReader:
    """Parse token payloads without checking signatures."""

    def __init__(self, *, leeway: int = 0) -> None:
        self.leeway = leeway

    def decode(self, token: str) -> TokenClaims | None:
        try:
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
                algorithms=["RS256", "HS256"],
            )
        except jwt.PyJWTError:
            return None
        if not isinstance(payload, dict):
            return None
        return TokenClaims.from_payload(payload)

    def is_expired(self, token: str) -> bool:
        claims = self.decode(token)
        return claims is None or claims.is_expired(leeway=self.leeway)


class JwksClaimsReader:
    """Verify RS256 signatures against a cached JSON Web Key Set."""

    algorithms: tuple[str, ...] = ("RS256",)

    def __init__(
        self,
        *,
        jwks_url: str,
        issuer: str | None,
        audience: str | None,
        cache_size: int = 5,
        cache_ttl_seconds: int = 600,
        leeway: int = 0,
        jwk_client: PyJWKClient | None = None,
    ) -> None:
        self.jwks_url = jwks_url
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway
        self._jwk_client = jwk_client or PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=cache_size,
            cache_jwk_set=True,
            lifespan=cache_ttl_seconds,
        )

    def decode(self, token: str) -> TokenClaims | None:
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=list(self.algorithms),
                issuer=self.issuer,
                leeway=self.leeway,
                options={
                    "verify_exp": False,
                    "verify_aud": False,
                    "verify_iss": self.issuer is not None,
                    "require": ["exp"],
                },
            )
        except jwt.PyJWTError as exc:
            logger.debug("auth.token.rejected", extra={"error": type(exc).__name__})
            return None
        if not isinstance(payload, dict):
            return None
        if not self._audience_matches(payload):
            logger.debug("auth.token.audience_mismatch")
            return None
        return TokenClaims.from_payload(payload)

    def _audience_matches(self, payload: Mapping[str, Any]) -> bool:
        if not self.audience:
            return True
        token_use = payload.get("token_use")
        if token_use == "access":
            return payload.get("client_id") == self.audience
        aud = payload.get("aud")
        if isinstance(aud, str):
            return aud == self.audience
        if isinstance(aud, list):
            return self.audience in aud
        return False

    def is_expired(self, token: str) -> bool:
        claims = self.decode(token)
        return claims is None or claims.is_expired(leeway=self.leeway)


def build_claims_reader(settings: Settings) -> ClaimsReader:
    """Pick the verifying reader whenever a key set URL is known."""

    if settings.verifies_signatures and settings.jwks_url:
        logger.info(
            "auth.claims_reader.jwks",
            extra={"jwks_url": settings.jwks_url, "issuer": settings.issuer},
        )
        return JwksClaimsReader(
            jwks_url=settings.jwks_url,
            issuer=settings.issuer,
            audience=settings.audience,
            cache_size=settings.auth_jwks_cache_size,
            cache_ttl_seconds=settings.auth_jwks_cache_ttl_seconds,
            leeway=settings.auth_clock_skew_seconds,
        )
    logger.warning(
        "auth.claims_reader.unverified",
        extra={"mode": settings.auth_token_verification},
    )
    return UnverifiedClaimsReader(leeway=settings.auth_clock_skew_seconds)


__all__ = [
    "ClaimsReader",
    "JwksClaimsReader",
    "TokenClaims",
    "UnverifiedClaimsReader",
    "build_claims_reader",
]
