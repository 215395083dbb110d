"""Pydantic schemas for identity administration."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from docportal.common.schema import BaseSchema


class IdentityOut(BaseSchema):
    """Identity record as exposed to administrators."""

    username: str
    is_admin: bool
    is_active: bool
    created_at: datetime


class IdentityCreate(BaseSchema):
    username: str = Field(min_length=1, max_length=255)
    is_admin: bool = False

    @field_validator("username")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("username must not be blank")
        return stripped


class IdentityUpdate(BaseSchema):
    """Partial update; omitted fields are left untouched."""

    is_admin: bool | None = None
    is_active: bool | None = None


__all__ = ["IdentityCreate", "IdentityOut", "IdentityUpdate"]
