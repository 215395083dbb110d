"""Pydantic schemas for the login proxy."""

from __future__ import annotations

from pydantic import Field, SecretStr

from docportal.common.schema import BaseSchema


class LoginRequest(BaseSchema):
    username: str = Field(min_length=1, max_length=255)
    password: SecretStr = Field(min_length=1)


class LoginResponse(BaseSchema):
    """Tokens issued by the identity provider, passed through unchanged."""

    username: str
    access_token: str
    id_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "Bearer"


__all__ = ["LoginRequest", "LoginResponse"]
