from __future__ import annotations

import time

import jwt

from docportal.core.auth.claims import TokenClaims, UnverifiedClaimsReader, build_claims_reader
from docportal.settings import Settings

SECRET = "unit-test-secret-with-enough-bytes!!"


def _token(**claims: object) -> str:
    return jwt.encode(claims, SECRET, algorithm="HS256")


def test_from_payload_prefers_cognito_username() -> None:
    claims = TokenClaims.from_payload(
        {
            "cognito:username": "usuario1",
            "username": "other",
            "name": "Usuario Uno",
            "cognito:groups": ["reviewers", "ops"],
            "custom:roles": "reader, writer",
            "exp": 1_900_000_000,
        }
    )

    assert claims is not None
    assert claims.username == "usuario1"
    assert claims.display_name == "Usuario Uno"
    assert claims.groups == ("reviewers", "ops")
    assert claims.roles == ("reader", "writer")
    assert claims.expires_at == 1_900_000_000


def test_from_payload_without_username_is_none() -> None:
    assert TokenClaims.from_payload({"sub": "abc", "exp": 1}) is None


def test_display_name_falls_back_to_username() -> None:
    claims = TokenClaims.from_payload({"username": "usuario2", "exp": 1})
    assert claims is not None
    assert claims.display_name == "usuario2"


def test_missing_exp_counts_as_expired() -> None:
    claims = TokenClaims.from_payload({"username": "usuario2"})
    assert claims is not None
    assert claims.is_expired()


def test_is_expired_honours_leeway() -> None:
    claims = TokenClaims.from_payload({"username": "usuario2", "exp": 1000})
    assert claims is not None
    assert claims.is_expired(now=1001)
    assert not claims.is_expired(now=1001, leeway=5)


def test_unverified_reader_decodes_without_checking_signature() -> None:
    reader = UnverifiedClaimsReader()
    token = _token(**{"cognito:username": "usuario1", "exp": int(time.time()) + 60})

    claims = reader.decode(token)

    assert claims is not None
    assert claims.username == "usuario1"
    assert not reader.is_expired(token)


def test_unverified_reader_rejects_garbage() -> None:
    reader = UnverifiedClaimsReader()
    assert reader.decode("not-a-jwt") is None
    assert reader.is_expired("not-a-jwt")


def test_unverified_reader_reports_expired_token() -> None:
    reader = UnverifiedClaimsReader()
    token = _token(username="usuario1", exp=int(time.time()) - 10)
    assert reader.decode(token) is not None
    assert reader.is_expired(token)


def test_build_claims_reader_without_jwks_is_unverified() -> None:
    settings = Settings(_env_file=None, storage_backend="memory")
    assert isinstance(build_claims_reader(settings), UnverifiedClaimsReader)
