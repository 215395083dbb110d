"""Pydantic schemas for grants and the caller's authorization view."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from docportal.common.schema import BaseSchema
from docportal.models import Grant

from .store import GrantChanges


class GrantOut(BaseSchema):
    id: int
    username: str = Field(validation_alias="owner_username", serialization_alias="username")
    bucket: str
    document_group_path: str
    is_active: bool
    created_at: datetime


class GrantWithOwnerOut(GrantOut):
    """Grant joined with its owner's flags (admin listing)."""

    owner_is_admin: bool
    owner_is_active: bool

    @classmethod
    def from_grant(cls, grant: Grant) -> GrantWithOwnerOut:
        return cls(
            id=grant.id,
            username=grant.owner_username,
            bucket=grant.bucket,
            document_group_path=grant.document_group_path,
            is_active=grant.is_active,
            created_at=grant.created_at,
            owner_is_admin=grant.owner.is_admin,
            owner_is_active=grant.owner.is_active,
        )


class GrantCreate(BaseSchema):
    username: str = Field(min_length=1, max_length=255)
    bucket: str = Field(min_length=1, max_length=255)
    document_group_path: str = Field(min_length=1, max_length=1024)


class GrantUpdate(BaseSchema):
    """Partial update restricted to bucket, folder, and active flag.

    Unrecognised keys are dropped by the base schema.
    """

    bucket: str | None = None
    document_group_path: str | None = None
    is_active: bool | None = None

    def to_changes(self) -> GrantChanges:
        return GrantChanges(
            bucket=self.bucket,
            document_group_path=self.document_group_path,
            is_active=self.is_active,
        )


class PrincipalOut(BaseSchema):
    username: str
    display_name: str
    email: str | None = None
    groups: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    is_admin: bool


class MyAuthorizationsOut(BaseSchema):
    """The caller's active grants and the one that governs this request."""

    grants: list[GrantOut]
    resolved: GrantOut | None = None
    selection_required: bool = False


__all__ = [
    "GrantCreate",
    "GrantOut",
    "GrantUpdate",
    "GrantWithOwnerOut",
    "MyAuthorizationsOut",
    "PrincipalOut",
]
